"""
Configuration settings for the InfluxDB reporter.
"""
import os

# Server configuration
SERVER_URL = os.getenv('INFLUXDB_URL', 'http://localhost:8086')
DATABASE = os.getenv('INFLUXDB_DATABASE', 'metrics')
USERNAME = os.getenv('INFLUXDB_USERNAME', '')
PASSWORD = os.getenv('INFLUXDB_PASSWORD', '')

# Reporting configuration
REPORTING_INTERVAL = int(os.getenv('REPORTING_INTERVAL', '10'))  # seconds
COLLECTION_WORKERS = int(os.getenv('COLLECTION_WORKERS', '4'))

# Batching configuration
BATCH_SIZE = int(os.getenv('BATCH_SIZE', '5000'))  # records per write request

# HTTP client configuration
REQUEST_TIMEOUT = int(os.getenv('REQUEST_TIMEOUT', '30'))  # seconds
MAX_RETRIES = int(os.getenv('MAX_RETRIES', '3'))
RETRY_DELAY = int(os.getenv('RETRY_DELAY', '5'))  # seconds

# Buffer configuration
BUFFER_SIZE = int(os.getenv('BUFFER_SIZE', '1000'))  # maximum number of records to retain

# Logging configuration
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
