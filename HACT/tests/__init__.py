# Precision for tests
HACT_PRECISION = 4
