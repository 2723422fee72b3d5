# docket_sync/core/config.py
import os
import json
from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import Optional, List
import logging

logger = logging.getLogger(__name__)

CONFIG_FILE_PATH = os.getenv("DOCKET_SYNC_CONFIG_FILE", "config.json")
DOTENV_PATH = ".env"

DEFAULT_BROWSER_LAUNCH_ARGS = [
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-gpu',
    '--no-zygote',
    '--single-process',
    '--disable-features=VizDisplayCompositor',
    '--disable-background-timer-throttling',
    '--disable-backgrounding-occluded-windows',
    '--disable-renderer-backgrounding',
]

class LawmaticsFormSelectors(BaseModel):
    # Matter lookup
    MATTER_ID_INPUT: str = "#id"
    FIND_MATTER_BUTTON: str = 'button[type="submit"]'

    # Custom fields the Lawmatics API does not expose
    APPLICATION_NUMBER_INPUT: str = 'input[name="RmllbGRzOjpDdXN0b21GaWVsZC1DdXN0b21GaWVsZDo6UHJvc3BlY3QtMzE0NzM="]'
    MAILROOM_DATE_INPUT: str = 'input[name="RmllbGRzOjpDdXN0b21GaWVsZC1DdXN0b21GaWVsZDo6UHJvc3BlY3QtNTQ5Mzgy"]'
    DOCUMENT_DESCRIPTION_INPUT: str = 'input[name="RmllbGRzOjpDdXN0b21GaWVsZC1DdXN0b21GaWVsZDo6UHJvc3BlY3QtNjI0NzA3"]'
    PATENT_DOCUMENT_DESCRIPTION_INPUT: str = 'input[name="RmllbGRzOjpDdXN0b21GaWVsZC1DdXN0b21GaWVsZDo6UHJvc3BlY3QtNjMzOTM5"]'
    DOCUMENT_LINK_INPUT: str = 'input[name="Q3VzdG9tRm9ybUNvbXBvbmVudDo6QWR2YW5jZWQtZ2VuZXJhbF9maWVsZC1lOWYxN2U2Zi03YTU4LTQ1YTMtYjNjYS1hMDcxMzAzMjcyZDQ="]'

    # The submit affordance renders under two markups depending on form state
    SUBMIT_BUTTON: str = 'button[type="button"]'
    SUBMIT_BUTTON_ALT: str = 'div[data-cy="Submit-button"]'

class FormTimings(BaseModel):
    # The remote form gives no completion signal, so these fixed waits are the contract.
    NAVIGATION_TIMEOUT_MS: int = Field(60000, ge=0)
    MATTER_ID_INPUT_TIMEOUT_MS: int = Field(10000, ge=0)
    MATTER_LOOKUP_SETTLE_MS: int = Field(15000, ge=0)
    FIELD_VISIBLE_TIMEOUT_MS: int = Field(5000, ge=0)
    FIELD_SETTLE_MS: int = Field(300, ge=0)
    TYPING_DELAY_MS: int = Field(50, ge=0)
    SUBMIT_PRIMARY_TIMEOUT_MS: int = Field(10000, ge=0)
    SUBMIT_ALT_TIMEOUT_MS: int = Field(5000, ge=0)
    POST_SUBMIT_SETTLE_MS: int = Field(5000, ge=0)

def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]

class AppSettings(BaseModel):
    PORT: int = Field(int(os.getenv("PORT", "8080")), gt=1023, lt=65536)
    HOST: str = os.getenv("HOST", "0.0.0.0")
    API_ACCESS_KEY: str = os.getenv("API_ACCESS_KEY", "CONFIG_ERROR_API_KEY_NOT_IN_ENV")
    API_READ_ACCESS_KEY: Optional[str] = os.getenv("API_READ_ACCESS_KEY") or None
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "USPTO Docket Sync")

    DATA_DIRECTORY: str = os.getenv("DATA_DIRECTORY", "docket_data")
    DATABASE_FILENAME: str = os.getenv("DATABASE_FILENAME", "docket_state.db")

    # Matter catalog: a JSON file, or inline JSON in the environment (takes precedence)
    MATTER_MAP_PATH: str = os.getenv("MATTER_MAP_PATH", "map.json")
    MATTER_MAP_JSON: Optional[str] = os.getenv("MATTER_MAP_JSON")

    # USPTO registry
    USPTO_API_KEY: str = os.getenv("USPTO_API_KEY", "")
    PATENT_DOCUMENTS_URL: str = os.getenv(
        "PATENT_DOCUMENTS_URL", "https://api.uspto.gov/api/v1/patent/applications/{application_number}/documents")
    TRADEMARK_DOCUMENTS_URL: str = os.getenv(
        "TRADEMARK_DOCUMENTS_URL", "https://tsdrapi.uspto.gov/ts/cd/casedocs/bundle.json?sn={application_number}")
    TRADEMARK_DOCUMENT_VIEWER_URL: str = "https://tsdr.uspto.gov/documentviewer?caseId=sn{application_number}&docId={document_id}"

    # Google Drive archive (token is provisioned externally)
    GOOGLE_DRIVE_ACCESS_TOKEN: str = os.getenv("GOOGLE_DRIVE_ACCESS_TOKEN", "")
    PATENT_DRIVE_FOLDER_ID: str = os.getenv("PATENT_DRIVE_FOLDER_ID", "")
    TRADEMARK_DRIVE_FOLDER_ID: str = os.getenv("TRADEMARK_DRIVE_FOLDER_ID", "")

    # Email notifications
    SMTP_HOST: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT: int = Field(int(os.getenv("SMTP_PORT", "587")), gt=0)
    SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    NOTIFY_FROM: Optional[EmailStr] = os.getenv("NOTIFY_FROM") or None
    NOTIFY_RECIPIENTS: List[EmailStr] = _env_list("NOTIFY_RECIPIENTS", [])

    # Lawmatics CRM
    LAWMATICS_API_URL: str = os.getenv("LAWMATICS_API_URL", "https://api.lawmatics.com/v1")
    LAWMATICS_API_TOKEN: str = os.getenv("LAWMATICS_API_TOKEN", "")
    LAWMATICS_FORM_URL: str = os.getenv(
        "LAWMATICS_FORM_URL", "https://app.lawmatics.com/forms/update-by-id/d2ab9a6a-2800-41f3-a4ba-51feedbf02b3")
    LAWMATICS_DOCUMENT_DATE_FIELD_ID: str = os.getenv("LAWMATICS_DOCUMENT_DATE_FIELD_ID", "549382")
    LAWMATICS_DOCUMENT_DESCRIPTION_FIELD_ID: str = os.getenv("LAWMATICS_DOCUMENT_DESCRIPTION_FIELD_ID", "624707")
    LAWMATICS_DOCUMENT_LINK_FIELD_ID: str = os.getenv("LAWMATICS_DOCUMENT_LINK_FIELD_ID", "633940")

    # "STRICT" makes prospect/form failures fatal, "BEST_EFFORT" logs them and reports success
    PIPELINE_FAILURE_POLICY: str = Field(os.getenv("PIPELINE_FAILURE_POLICY", "STRICT"), validate_default=True)

    BROWSER_HEADLESS: bool = os.getenv("BROWSER_HEADLESS", "true").lower() != "false"
    BROWSER_EXECUTABLE_PATH: Optional[str] = os.getenv("BROWSER_EXECUTABLE_PATH") or None
    BROWSER_LAUNCH_ARGS: List[str] = _env_list("BROWSER_LAUNCH_ARGS", DEFAULT_BROWSER_LAUNCH_ARGS)

    HTTP_TIMEOUT_SECONDS: int = Field(int(os.getenv("HTTP_TIMEOUT_SECONDS", "60")), gt=0)

    LAWMATICS_FORM_SELECTORS: LawmaticsFormSelectors = Field(default_factory=LawmaticsFormSelectors)
    FORM_TIMINGS: FormTimings = Field(default_factory=FormTimings)

    @property
    def DATABASE_URL(self) -> str:
        abs_data_path = os.path.abspath(self.DATA_DIRECTORY)
        return f"sqlite:///{os.path.join(abs_data_path, self.DATABASE_FILENAME)}"

    @property
    def TEMP_DOCUMENTS_PATH(self) -> str:
        return os.path.join(os.path.abspath(self.DATA_DIRECTORY), "temp_documents")

    @property
    def SCREENSHOT_PATH(self) -> str:
        return os.path.join(os.path.abspath(self.DATA_DIRECTORY), "debug_screenshots")

    @field_validator("PIPELINE_FAILURE_POLICY", mode="before")
    @classmethod
    def normalize_failure_policy(cls, value):
        # Accepts "best_effort", "Best-Effort" etc. from .env or config.json
        policy = str(value or "STRICT").strip().upper().replace("-", "_").replace(" ", "_")
        if policy not in ("STRICT", "BEST_EFFORT"):
            raise ValueError(f"Unknown PIPELINE_FAILURE_POLICY '{value}'. Expected STRICT or BEST_EFFORT.")
        return policy

    class Config:
        extra = 'ignore'

_cached_settings: Optional[AppSettings] = None
CLIENT_CONFIG_KEYS = {
    "USPTO_API_KEY", "GOOGLE_DRIVE_ACCESS_TOKEN", "PATENT_DRIVE_FOLDER_ID", "TRADEMARK_DRIVE_FOLDER_ID",
    "NOTIFY_RECIPIENTS", "LAWMATICS_API_TOKEN", "LAWMATICS_FORM_URL", "PIPELINE_FAILURE_POLICY",
}

def load_settings() -> AppSettings:
    global _cached_settings
    if _cached_settings is None:
        try:
            values = AppSettings().model_dump()

            if os.path.exists(CONFIG_FILE_PATH):
                try:
                    with open(CONFIG_FILE_PATH, 'r') as f:
                        json_config = json.load(f)
                    for key in CLIENT_CONFIG_KEYS:
                        if key in json_config and json_config[key] is not None:
                            values[key] = json_config[key]
                    for table_key in ("LAWMATICS_FORM_SELECTORS", "FORM_TIMINGS"):
                        if isinstance(json_config.get(table_key), dict):
                            values[table_key] = {**values[table_key], **json_config[table_key]}
                            logger.info(f"Loaded {table_key} overrides from {CONFIG_FILE_PATH}.")
                except Exception as e:
                    logger.error(f"Error reading or applying {CONFIG_FILE_PATH}: {e}. Using .env/defaults.")
            else:
                logger.info(f"{CONFIG_FILE_PATH} not found. Using .env/defaults.")

            _cached_settings = AppSettings(**values)

            if _cached_settings.API_ACCESS_KEY == "CONFIG_ERROR_API_KEY_NOT_IN_ENV":
                logger.critical("API_ACCESS_KEY IS NOT SET IN .env! API will be inaccessible.")

            data_dir = os.path.abspath(_cached_settings.DATA_DIRECTORY)
            if not os.path.exists(data_dir):
                try:
                    os.makedirs(data_dir, exist_ok=True)
                    logger.info(f"Created data directory during settings load: {data_dir}")
                except Exception as e:
                    logger.critical(f"CRITICAL: Could not create data directory {data_dir} during settings load: {e}")

            logger.info("Application settings processed.")
            logger.debug(f"Effective settings (secrets redacted): "
                         f"DataDir='{_cached_settings.DATA_DIRECTORY}', "
                         f"Policy='{_cached_settings.PIPELINE_FAILURE_POLICY}', "
                         f"FormURL='{_cached_settings.LAWMATICS_FORM_URL}', "
                         f"Recipients={len(_cached_settings.NOTIFY_RECIPIENTS)}")

        except Exception as e:
            logger.critical(f"CRITICAL ERROR initializing AppSettings: {e}.", exc_info=True)
            raise

    return _cached_settings

def get_app_settings() -> AppSettings:
    if _cached_settings is None:
        load_settings()
    return _cached_settings

settings = load_settings()
