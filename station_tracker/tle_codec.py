"""
TLE Codec Module

Encodes orbital element records into the fixed-width Two-Line Element (TLE)
format read by the sgp4 library, and decodes TLE lines back into records.

Every field is written at its exact column width. A value that cannot be
represented (non-finite, out of range, or too wide for its columns) raises
EncodingError instead of being silently truncated.
"""

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Tuple

from pydantic import ValidationError

from station_tracker.errors import ElementFormatError, EncodingError
from station_tracker.models import OrbitalElementRecord

LINE_LENGTH = 69
CANONICAL_ZERO_EXPONENTIAL = " 00000-0"

_DESIGNATOR_PATTERN = re.compile(r"^(\d{4})-(\d{3})([A-Z]{1,3})$")


class TLECodec:
    """
    Encoder and decoder for Two-Line Element (TLE) sets.

    Provides methods for:
    - Rendering an OrbitalElementRecord as TLE line 1 and line 2
    - Parsing TLE lines back into an OrbitalElementRecord
    - Computing the modulo-10 line checksum
    """

    def __init__(self, verify_checksum: bool = True):
        """
        Initialize the codec.

        Args:
            verify_checksum: Reject decoded lines whose checksum digit is wrong
        """
        self.verify_checksum = verify_checksum

    def encode(self, record: OrbitalElementRecord) -> Tuple[str, str]:
        """Encode a record as a (line1, line2) pair."""
        return self.encode_line1(record), self.encode_line2(record)

    def encode_line1(self, record: OrbitalElementRecord) -> str:
        """
        Render TLE line 1.

        Args:
            record: Element record to encode

        Returns:
            69-character line including checksum

        Raises:
            EncodingError: If any field does not fit its columns
        """
        satnum = self._format_integer("norad_cat_id", record.norad_cat_id, 5, zero_pad=True)
        classification = self._format_classification(record.classification_type)
        designator = self._format_designator(record.object_id)
        epoch = self._format_epoch(record.epoch)
        ndot = self._format_first_derivative(record.mean_motion_dot)
        nddot = self._format_exponential("mean_motion_ddot", record.mean_motion_ddot)
        bstar = self._format_exponential("bstar", record.bstar)
        ephemeris = self._format_integer("ephemeris_type", record.ephemeris_type, 1)
        element_number = self._format_integer("element_set_no", record.element_set_no, 4)

        line = (
            f"1 {satnum}{classification} {designator} {epoch} "
            f"{ndot} {nddot} {bstar} {ephemeris} {element_number}"
        )
        return line + str(self.checksum(line))

    def encode_line2(self, record: OrbitalElementRecord) -> str:
        """
        Render TLE line 2.

        Args:
            record: Element record to encode

        Returns:
            69-character line including checksum

        Raises:
            EncodingError: If any field does not fit its columns
        """
        satnum = self._format_integer("norad_cat_id", record.norad_cat_id, 5, zero_pad=True)
        incl = self._format_decimal("inclination", record.inclination, 8, 4)
        raan = self._format_decimal("ra_of_asc_node", record.ra_of_asc_node, 8, 4)
        ecc = self._format_eccentricity(record.eccentricity)
        argp = self._format_decimal("arg_of_pericenter", record.arg_of_pericenter, 8, 4)
        mean_anom = self._format_decimal("mean_anomaly", record.mean_anomaly, 8, 4)
        mean_motion = self._format_decimal("mean_motion", record.mean_motion, 11, 8)
        rev_num = self._format_integer("rev_at_epoch", record.rev_at_epoch, 5)

        line = f"2 {satnum} {incl} {raan} {ecc} {argp} {mean_anom} {mean_motion}{rev_num}"
        return line + str(self.checksum(line))

    def decode(self, line1: str, line2: str, name: str = "") -> OrbitalElementRecord:
        """
        Parse TLE lines into an element record.

        Args:
            line1: First line of TLE
            line2: Second line of TLE
            name: Optional object name (TLE line 0)

        Returns:
            OrbitalElementRecord with the decoded values

        Raises:
            ElementFormatError: If the lines are malformed
        """
        line1 = line1.rstrip()
        line2 = line2.rstrip()
        self._check_line(line1, "1")
        self._check_line(line2, "2")

        if line1[2:7] != line2[2:7]:
            raise ElementFormatError(
                f"Catalog numbers differ between lines: {line1[2:7]!r} vs {line2[2:7]!r}"
            )

        try:
            fields = {
                "OBJECT_NAME": name,
                "OBJECT_ID": self._parse_designator(line1[9:17]),
                "EPOCH": self._parse_epoch(line1[18:20], line1[20:32]),
                "NORAD_CAT_ID": int(line1[2:7]),
                "CLASSIFICATION_TYPE": line1[7],
                "MEAN_MOTION_DOT": float(line1[33:43]),
                "MEAN_MOTION_DDOT": self._parse_exponential(line1[44:52]),
                "BSTAR": self._parse_exponential(line1[53:61]),
                "EPHEMERIS_TYPE": int(line1[62]),
                "ELEMENT_SET_NO": int(line1[64:68]),
                "INCLINATION": float(line2[8:16]),
                "RA_OF_ASC_NODE": float(line2[17:25]),
                "ECCENTRICITY": float("0." + line2[26:33].strip()),
                "ARG_OF_PERICENTER": float(line2[34:42]),
                "MEAN_ANOMALY": float(line2[43:51]),
                "MEAN_MOTION": float(line2[52:63]),
                "REV_AT_EPOCH": int(line2[63:68]),
            }
            return OrbitalElementRecord.model_validate(fields)
        except (ValueError, ValidationError) as e:
            raise ElementFormatError(f"Unparsable element column: {e}") from e

    def checksum(self, line: str) -> int:
        """Modulo-10 sum of the digits in the first 68 columns, '-' counting as 1."""
        total = 0
        for char in line[:68]:
            if char.isdigit():
                total += int(char)
            elif char == "-":
                total += 1
        return total % 10

    def _check_line(self, line: str, number: str) -> None:
        if len(line) != LINE_LENGTH:
            raise ElementFormatError(
                f"Line {number} must be {LINE_LENGTH} characters, got {len(line)}"
            )
        if line[0] != number or line[1] != " ":
            raise ElementFormatError(f"Line {number} does not start with {number!r}")
        if self.verify_checksum:
            if not line[68].isdigit() or int(line[68]) != self.checksum(line):
                raise ElementFormatError(f"Line {number} checksum mismatch")

    def _require_finite(self, field: str, value: float) -> None:
        if not math.isfinite(value):
            raise EncodingError(field, value, "value is not finite")

    def _fit(self, field: str, value, text: str, width: int) -> str:
        if len(text) != width:
            raise EncodingError(field, value, f"does not fit {width} columns")
        return text

    def _format_integer(self, field: str, value: int, width: int, zero_pad: bool = False) -> str:
        if value < 0:
            raise EncodingError(field, value, "negative values are not representable")
        text = f"{value:0{width}d}" if zero_pad else f"{value:{width}d}"
        return self._fit(field, value, text, width)

    def _format_decimal(self, field: str, value: float, width: int, decimals: int) -> str:
        self._require_finite(field, value)
        return self._fit(field, value, f"{value:{width}.{decimals}f}", width)

    def _format_classification(self, value: str) -> str:
        return self._fit("classification_type", value, value or "U", 1)

    def _format_designator(self, object_id: str) -> str:
        match = _DESIGNATOR_PATTERN.match(object_id or "")
        if match is None:
            # Not used by propagation; unknown forms are left blank
            return " " * 8
        year, launch, piece = match.groups()
        return f"{year[2:]}{launch}{piece}".ljust(8)

    def _format_epoch(self, epoch: datetime) -> str:
        if epoch.tzinfo is None:
            epoch = epoch.replace(tzinfo=timezone.utc)
        epoch = epoch.astimezone(timezone.utc)
        if not 1957 <= epoch.year <= 2056:
            raise EncodingError("epoch", epoch, "year is outside the two-digit 1957-2056 window")

        elapsed = epoch - datetime(epoch.year, 1, 1, tzinfo=timezone.utc)
        day_of_year = elapsed.days + 1
        fraction = (elapsed.seconds + elapsed.microseconds / 1e6) / 86400.0
        return f"{epoch.year % 100:02d}" + self._fit(
            "epoch", epoch, f"{day_of_year + fraction:012.8f}", 12
        )

    def _format_first_derivative(self, value: float) -> str:
        """Format n-dot/2 as sign plus '.dddddddd' (10 columns)."""
        self._require_finite("mean_motion_dot", value)
        digits = f"{abs(value):.8f}"
        if not digits.startswith("0."):
            raise EncodingError("mean_motion_dot", value, "magnitude must be below 1")
        sign = "-" if value < 0 and digits != "0.00000000" else " "
        return sign + digits[1:]

    def _format_exponential(self, field: str, value: float) -> str:
        """Format a number in TLE exponential notation (' 12345-5' means 0.12345e-5)."""
        self._require_finite(field, value)
        if value == 0.0:
            return CANONICAL_ZERO_EXPONENTIAL

        exponent = math.floor(math.log10(abs(value))) + 1
        mantissa = int(round(abs(value) / 10.0 ** exponent * 100000))
        if mantissa >= 100000:
            mantissa //= 10
            exponent += 1

        # Below one exponent digit the value rounds to zero
        if exponent < -9 or mantissa == 0:
            return CANONICAL_ZERO_EXPONENTIAL
        if exponent > 9:
            raise EncodingError(field, value, "exponent does not fit a single digit")

        sign = "-" if value < 0 else " "
        exp_sign = "-" if exponent < 0 else "+"
        return f"{sign}{mantissa:05d}{exp_sign}{abs(exponent):d}"

    def _format_eccentricity(self, value: float) -> str:
        self._require_finite("eccentricity", value)
        if not 0.0 <= value < 1.0:
            raise EncodingError("eccentricity", value, "must satisfy 0 <= e < 1")
        digits = int(round(value * 1e7))
        if digits >= 10_000_000:
            raise EncodingError("eccentricity", value, "rounds to 1.0 at 7 digits")
        return f"{digits:07d}"

    def _parse_exponential(self, field: str) -> float:
        text = field.replace(" ", "")
        if not text:
            return 0.0
        sign = ""
        if text[0] in "+-":
            sign, text = text[0], text[1:]
        mantissa, exponent = text[:-2], text[-2:]
        return float(f"{sign}0.{mantissa}e{exponent}")

    def _parse_epoch(self, year_text: str, day_text: str) -> datetime:
        two_digit_year = int(year_text)
        year = 1900 + two_digit_year if two_digit_year >= 57 else 2000 + two_digit_year
        day = float(day_text)
        return datetime(year, 1, 1, tzinfo=timezone.utc) + timedelta(days=day - 1.0)

    def _parse_designator(self, field: str) -> str:
        text = field.strip()
        if len(text) < 6:
            return ""
        two_digit_year = int(text[:2])
        year = 1900 + two_digit_year if two_digit_year >= 57 else 2000 + two_digit_year
        return f"{year}-{text[2:]}"


_default_codec = TLECodec()


def encode_line1(record: OrbitalElementRecord) -> str:
    return _default_codec.encode_line1(record)


def encode_line2(record: OrbitalElementRecord) -> str:
    return _default_codec.encode_line2(record)
