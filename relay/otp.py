"""
One-time code issuance and verification.

Codes are kept in memory keyed by mobile number. A record is overwritten
by a new request, removed by one successful verification, and otherwise
left in place until it is rejected by its expiry timestamp.
"""

import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from relay.errors import InvalidFormat
from relay.utils import generate_otp

logger = logging.getLogger(__name__)

MOBILE_PATTERN = re.compile(r"\+[0-9]{7,12}")


@dataclass
class OtpRecord:
    code: str
    expires_at: float


class OtpAuthenticator:
    """In-memory OTP store with single-use, time-limited codes."""

    def __init__(
        self,
        ttl_seconds: int = 300,
        clock: Callable[[], float] = time.time,
        code_factory: Callable[[], str] = generate_otp,
        log_codes: bool = True,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._code_factory = code_factory
        self._log_codes = log_codes
        self._records: dict[str, OtpRecord] = {}
        self._lock = threading.Lock()

    def request_code(self, mobile: Any) -> None:
        """
        Issue a code for a mobile number.

        The code is not returned; it goes to the operator log only.

        Raises:
            InvalidFormat: mobile is not '+' followed by 7-12 digits
        """
        if not isinstance(mobile, str) or not MOBILE_PATTERN.fullmatch(mobile):
            logger.warning("Rejected OTP request", extra={"mobile": mobile})
            raise InvalidFormat()

        code = self._code_factory()
        with self._lock:
            self._records[mobile] = OtpRecord(
                code=code,
                expires_at=self._clock() + self.ttl_seconds,
            )

        if self._log_codes:
            logger.info(f"OTP for {mobile}: {code}", extra={"mobile": mobile})
        else:
            logger.info("OTP issued", extra={"mobile": mobile})

    def verify_code(self, mobile: str, code: Union[str, int]) -> bool:
        """
        Check a code and consume it on success.

        Returns False for an unknown number, a wrong code or an expired
        code alike.
        """
        with self._lock:
            record = self._records.get(mobile)
            if record is None or record.code != code or self._clock() >= record.expires_at:
                logger.info("OTP verification failed", extra={"mobile": mobile})
                return False
            del self._records[mobile]

        logger.info("OTP verified", extra={"mobile": mobile})
        return True

    def pending(self, mobile: str) -> Optional[OtpRecord]:
        """Current record for a number, stale or not."""
        with self._lock:
            return self._records.get(mobile)
