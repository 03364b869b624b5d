# Ingest Configuration
class Config:
    BATCH_SIZE = 1000
    DEFAULT_MIN_STOCK_LEVEL = 0
    DEFAULT_MAX_STOCK_LEVEL = 1000
    ALLOWED_EXTENSIONS = {'csv'}
    PREVIEW_SAMPLE_ROWS = 3
    HISTORY_LIMIT = 50
    REJECT_FUTURE_DATES = True
