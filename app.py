# app.py

from dotenv import load_dotenv

# Load environment variables from .env file first
load_dotenv()

# Module imports after load_dotenv() - E402 is intentional
from roster_app import create_app  # noqa: E402

# Entry point for `flask --app app jobs ...`
app = create_app()
