# docket_sync/utils/common.py
import os
import re
import logging
from datetime import date, datetime
from typing import Optional

logger = logging.getLogger(__name__)

def sanitize_filename(name: str, default_name: str = "unnamed_document", max_length: int = 100) -> str:
    if not name:
        name = default_name

    name = str(name)
    # Remove or replace characters invalid in Windows/Linux/MacOS filenames
    name = re.sub(r'[<>:"/\\|?*]', '_', name)
    # Keep alphanumeric, spaces, dots, hyphens
    name = re.sub(r'[^\w\s.-]', '', name)
    name = re.sub(r'[-\s]+', '-', name).strip('-_')

    base, ext = os.path.splitext(name)
    if len(base) > max_length:
        base = base[:max_length]

    name = base + ext
    if not name or name == ext:
        name = default_name
    return name

def parse_registry_date(value: Optional[str]) -> Optional[date]:
    """Parses the leading YYYY-MM-DD of a registry timestamp ("2024-03-01T00:00:00.000-0500")."""
    if not value:
        return None
    try:
        return datetime.strptime(str(value).strip()[:10], "%Y-%m-%d").date()
    except ValueError:
        logger.warning(f"Unparseable registry date: '{value}'")
        return None

def clean_text(text: Optional[str]) -> str:
    if not text:
        return ""
    text = text.replace('\n', ' ').replace('\r', ' ')
    text = re.sub(r'\s+', ' ', text)
    return text.strip()
