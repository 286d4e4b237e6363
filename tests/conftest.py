import os

os.environ.setdefault("TRANSAT_LOG_LEVEL", "ERROR")
os.environ.setdefault("TRANSAT_NO_COLOR", "1")
