"""gyrolog: calibrated gyroscope logging over I²C.

The package is split the same way as the recorder it grew out of:
- :mod:`sensors` talks to the device registers.
- :mod:`core` owns calibration, runtime state and the paced sampling loop.
- :mod:`dataio` writes sample records to disk.
- :mod:`config` loads YAML defaults for the command-line entry point.
"""

__version__ = "0.1.0"
