import dotenv
import os

dotenv.load_dotenv()

PORT = int(os.getenv("PORT", "8000"))

if not PORT:
    raise ValueError("PORT is not set")

PROTOTYPES_DIR = os.getenv("PINUP_PROTOTYPES_DIR", "prototypes")

if not os.path.isdir(PROTOTYPES_DIR):
    print(f"Warning: prototypes directory {PROTOTYPES_DIR!r} does not exist yet.")

HIGHLIGHT_CLEAR_SECONDS = float(os.getenv("PINUP_HIGHLIGHT_CLEAR_SECONDS", "2.0"))

API_URL = os.getenv("PINUP_API_URL", f"http://localhost:{PORT}")
API_TIMEOUT = float(os.getenv("PINUP_API_TIMEOUT", "10"))

# Comma-separated regexes; replaces the default utility-class denylist
UTILITY_CLASS_PATTERNS = [
    p.strip()
    for p in os.getenv("PINUP_UTILITY_CLASS_PATTERNS", "").split(",")
    if p.strip()
]

DEBUG_MODE = os.getenv("PINUP_DEBUG", "true").lower() in ("1", "true", "yes")
