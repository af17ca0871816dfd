# config.py
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent

class Config:
    # Storage
    # Directory holding invoices.json, customers.json and meta.json.
    # A dataDirectory stored in settings takes over after startup.
    DATA_DIR = os.getenv("DATA_DIR", "data")

    # Frontend assets served for any non-API path
    STATIC_DIR = os.getenv("STATIC_DIR", (BASE_DIR / "static").as_posix())

    # Bulk PDF export target (bulk_generate_pdfs.py)
    EXPORTS_DIR = os.getenv("EXPORTS_DIR", (BASE_DIR / "exports").as_posix())

    # Server
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", "8080"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Invoice numbering
    # Format: INV- + zero-padded id
    INVOICE_NUMBER_WIDTH = int(os.getenv("INVOICE_NUMBER_WIDTH", "4"))

    # Company info shown on PDFs until settings are saved
    COMPANY_NAME = os.getenv("COMPANY_NAME", "My Household")
    COMPANY_EMAIL = os.getenv("COMPANY_EMAIL", "")
    COMPANY_PHONE = os.getenv("COMPANY_PHONE", "")
    COMPANY_WEBSITE = os.getenv("COMPANY_WEBSITE", "")
    COMPANY_ADDRESS = os.getenv("COMPANY_ADDRESS", "")
