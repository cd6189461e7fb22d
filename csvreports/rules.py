"""
Deterministic ingestion and analysis rules.

Limits are read once from the environment so a deployment can tune them
without code changes; everything else here is fixed behavior.
"""

import os

# Rows kept verbatim per report. The row count is always exact.
SAMPLE_CAP = int(os.getenv("SAMPLE_CAP", "1000"))

# Column analysis bounds (values processed per call / distinct values returned)
ANALYSIS_MAX_VALUES = int(os.getenv("ANALYSIS_MAX_VALUES", "10000"))
ANALYSIS_TOP_K = int(os.getenv("ANALYSIS_TOP_K", "20"))

# Bytes handed to charset-normalizer for the diagnostic encoding hint
ENCODING_HINT_BYTES = int(os.getenv("ENCODING_HINT_BYTES", str(64 * 1024)))

UNCATEGORIZED_LABEL = os.getenv("UNCATEGORIZED_LABEL", "uncategorized")

DELIMITER_CANDIDATES = (",", ";", "\t", "|")
DEFAULT_DELIMITER = ","

ACCEPTED_EXTENSIONS = (".csv",)

# Signed 64-bit bounds for integer cells; larger literals stay text
INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1

# Longest single field the csv reader accepts; the stdlib default is 131072.
# Kept within a C long so csv.field_size_limit accepts it on every platform.
MAX_FIELD_CHARS = int(os.getenv("MAX_FIELD_CHARS", str(2 ** 31 - 1)))
