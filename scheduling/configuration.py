"""
Per-call configuration snapshot loading.

Opening hours, booking limits and holidays are read once per validation
or suggestion call and reused for every sub-check. Any failure to read
or parse them is a hard error: booking fails closed, never open.
"""

from datetime import date
from typing import Any, Dict, List, Protocol

from pydantic import ValidationError as PydanticValidationError

from config import settings
from models.business_settings import BookingConfiguration, parse_business_settings
from models.holiday import Holiday
from utils.exceptions import ConfigurationUnavailableError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_level=settings.log_level)


class ConfigurationReader(Protocol):
    async def get_business_settings(self) -> List[Dict[str, Any]]: ...

    async def get_holidays(self, start_date: date, end_date: date) -> List[Holiday]: ...


async def load_configuration(
    reader: ConfigurationReader, start_date: date, end_date: date
) -> BookingConfiguration:
    """
    Read a configuration snapshot covering ``start_date``..``end_date``.

    Raises:
        ConfigurationUnavailableError: If settings or holidays cannot be
            read, or stored values are invalid
    """
    try:
        rows = await reader.get_business_settings()
        holidays = await reader.get_holidays(start_date, end_date)
        return parse_business_settings(rows, holidays)
    except ConfigurationUnavailableError:
        logger.error("Booking configuration read failed", exc_info=True)
        raise
    except (PydanticValidationError, KeyError, TypeError, AttributeError) as e:
        logger.error(f"Invalid booking configuration: {e}")
        raise ConfigurationUnavailableError(f"Invalid booking configuration: {e}") from e
