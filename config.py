"""
Runtime settings read from the environment (and a local .env file, if any).

Static domain tables live in portal_data.py; this module only holds values an
operator is expected to change per deployment.
"""

import os

from dotenv import load_dotenv

load_dotenv()

OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o")
OPENAI_TIMEOUT = float(os.environ.get("OPENAI_TIMEOUT", "60"))

UPLOAD_DIR = os.environ.get("UPLOAD_DIR", "uploads")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
PORT = int(os.environ.get("PORT", "3000"))

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
