"""Small developer utilities (opt-in timing instrumentation)."""
