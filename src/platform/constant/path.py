from pathlib import Path


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent.parent.parent

# Log directory
LOG_DIR = BASE_DIR / 'logs'

# Diagnostic evidence (screenshots / page snapshots) for failed purchases
SCREENSHOT_DIR = BASE_DIR / 'screenshots'
