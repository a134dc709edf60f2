"""Runtime configuration for the events updater, read from the environment."""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from scraper.marhaba import MISSING_DATE_POLICIES, MarhabaScraper
from scraper.predicthq import PredictHQClient

LOG_FORMATS = ('text', 'json')

_TRUE = ('1', 'true', 'yes', 'on')
_FALSE = ('0', 'false', 'no', 'off', '')


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    value = value.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


@dataclass
class Settings:
    """Configuration of one update run."""
    events_file: str = os.path.join('data', 'events.json')
    predicthq_api_key: Optional[str] = None
    log_level: str = 'INFO'
    log_format: str = 'text'
    timeout_seconds: int = 15
    max_retries: int = 3
    # Pure growth unless pruning is asked for explicitly.
    prune_expired: bool = False
    # 'drop' or 'placeholder' for scraped events without a date.
    missing_date_policy: str = 'drop'
    detail_fetch_limit: int = 10
    doha_location: str = PredictHQClient.DOHA_LOCATION
    search_radius: str = '50km'
    marhaba_url: str = MarhabaScraper.BASE_URL

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Check option values.

        Raises:
            ValueError: If a setting is out of range
        """
        if self.missing_date_policy not in MISSING_DATE_POLICIES:
            raise ValueError(
                f"MISSING_DATE_POLICY must be one of {MISSING_DATE_POLICIES}, "
                f"got {self.missing_date_policy!r}"
            )
        if self.log_format not in LOG_FORMATS:
            raise ValueError(
                f"LOG_FORMAT must be one of {LOG_FORMATS}, got {self.log_format!r}"
            )
        if self.timeout_seconds <= 0:
            raise ValueError("TIMEOUT_SECONDS must be positive")
        if self.max_retries < 1:
            raise ValueError("MAX_RETRIES must be at least 1")
        if self.detail_fetch_limit < 0:
            raise ValueError("DETAIL_FETCH_LIMIT must not be negative")

    @classmethod
    def from_env(cls) -> 'Settings':
        """Build settings from environment variables and an optional .env file."""
        load_dotenv()
        defaults = cls()
        return cls(
            events_file=os.environ.get('EVENTS_FILE') or defaults.events_file,
            predicthq_api_key=os.environ.get('PREDICTHQ_API_KEY') or None,
            log_level=os.environ.get('LOG_LEVEL', defaults.log_level),
            log_format=os.environ.get('LOG_FORMAT', defaults.log_format).lower(),
            timeout_seconds=_env_int('TIMEOUT_SECONDS', defaults.timeout_seconds),
            max_retries=_env_int('MAX_RETRIES', defaults.max_retries),
            prune_expired=_env_bool('PRUNE_EXPIRED', defaults.prune_expired),
            missing_date_policy=os.environ.get(
                'MISSING_DATE_POLICY', defaults.missing_date_policy
            ).lower(),
            detail_fetch_limit=_env_int(
                'DETAIL_FETCH_LIMIT', defaults.detail_fetch_limit
            ),
            doha_location=os.environ.get('DOHA_LOCATION') or defaults.doha_location,
            search_radius=os.environ.get('SEARCH_RADIUS') or defaults.search_radius,
            marhaba_url=os.environ.get('MARHABA_URL') or defaults.marhaba_url,
        )
