from pathlib import Path

# Define the root directory of the project
ROOT_DIR = Path(__file__).resolve().parent

# Exported flow documents
FLOW_FILE_SUFFIX = ".flow.yaml"

# Dual Authoring Defaults
HISTORY_LIMIT = 50
DEFAULT_FROM_PORT = "output"
DEFAULT_TO_PORT = "input"

# App Defaults - API Server
API_HOST = "0.0.0.0"
API_PORT = 8000
LOG_LEVEL = "INFO"
LOG_BUFFER_SIZE = 100
