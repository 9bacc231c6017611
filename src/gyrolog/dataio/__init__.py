"""Data output helpers.

- :mod:`csv_writer` writes one comma-separated record per sample.
- :mod:`file_paths` names data files and their metadata sidecars.
"""

from .csv_writer import HEADER, CsvSampleSink, OutputSink, format_record
from .file_paths import DataFilePaths, build_data_file_paths

__all__ = [
    "HEADER",
    "CsvSampleSink",
    "DataFilePaths",
    "OutputSink",
    "build_data_file_paths",
    "format_record",
]
