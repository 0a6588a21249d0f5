"""
Unit Tests for the TLE Codec

Run with:
    python -m pytest tests/test_tle_codec.py -v
"""

import math
import unittest
from datetime import datetime, timezone

from config import FALLBACK_CSS_ELEMENTS, FALLBACK_ISS_ELEMENTS
from station_tracker.errors import ElementFormatError, EncodingError
from station_tracker.models import OrbitalElementRecord
from station_tracker.tle_codec import LINE_LENGTH, TLECodec, encode_line1, encode_line2

from fakes import ISS_LINE1, ISS_LINE2


class TestTLEEncoding(unittest.TestCase):
    """Encoding element records into fixed-width lines."""

    def setUp(self):
        self.codec = TLECodec()
        self.iss = OrbitalElementRecord.model_validate(FALLBACK_ISS_ELEMENTS)
        self.css = OrbitalElementRecord.model_validate(FALLBACK_CSS_ELEMENTS)

    def test_fixed_line_widths(self):
        """Both lines are exactly 69 columns for every fallback record."""
        for record in (self.iss, self.css):
            line1, line2 = self.codec.encode(record)
            self.assertEqual(len(line1), LINE_LENGTH)
            self.assertEqual(len(line2), LINE_LENGTH)
            self.assertTrue(line1.startswith("1 "))
            self.assertTrue(line2.startswith("2 "))

    def test_iss_fallback_line1_columns(self):
        line1 = self.codec.encode_line1(self.iss)

        self.assertEqual(line1[2:7], "25544")
        self.assertEqual(line1[7], "U")
        self.assertEqual(line1[9:17], "98067A  ")
        self.assertEqual(line1[18:32], "24001.00000000")
        self.assertEqual(line1[33:43], " .00002182")
        self.assertEqual(line1[44:52], " 00000-0")
        self.assertEqual(line1[53:61], " 21906-4")
        self.assertEqual(line1[62], "0")
        self.assertEqual(line1[64:68], " 999")
        self.assertEqual(int(line1[68]), self.codec.checksum(line1))

    def test_iss_fallback_line2_columns(self):
        line2 = self.codec.encode_line2(self.iss)

        self.assertEqual(line2[2:7], "25544")
        self.assertEqual(line2[8:16], " 51.6400")
        self.assertEqual(line2[17:25], "123.4567")
        self.assertEqual(line2[26:33], "0005500")
        self.assertEqual(line2[34:42], "234.5678")
        self.assertEqual(line2[43:51], "345.6789")
        self.assertEqual(line2[52:63], "15.49112426")
        self.assertEqual(line2[63:68], "12345")

    def test_epoch_day_of_year_with_fraction(self):
        """Epoch is day of year plus the elapsed fraction of the UTC day."""
        line1 = self.codec.encode_line1(self.css)
        # 2025-06-11T02:33:23.591520 is day 162, 9203.59152 s into the day
        self.assertEqual(line1[18:32], "25162.10652305")

    def test_zero_terms_use_canonical_form(self):
        record = self.iss.model_copy(update={"bstar": 0.0, "mean_motion_ddot": 0.0})
        line1 = self.codec.encode_line1(record)
        self.assertEqual(line1[44:52], " 00000-0")
        self.assertEqual(line1[53:61], " 00000-0")

    def test_negative_drag_term(self):
        record = self.iss.model_copy(update={"bstar": -0.00011606})
        self.assertEqual(self.codec.encode_line1(record)[53:61], "-11606-3")

    def test_negative_first_derivative(self):
        record = self.iss.model_copy(update={"mean_motion_dot": -0.00002182})
        self.assertEqual(self.codec.encode_line1(record)[33:43], "-.00002182")

    def test_module_level_helpers(self):
        self.assertEqual(encode_line1(self.iss), self.codec.encode_line1(self.iss))
        self.assertEqual(encode_line2(self.iss), self.codec.encode_line2(self.iss))


class TestTLEEncodingErrors(unittest.TestCase):
    """Values that do not fit their columns are rejected, not truncated."""

    def setUp(self):
        self.codec = TLECodec()
        self.iss = OrbitalElementRecord.model_validate(FALLBACK_ISS_ELEMENTS)

    def assertEncodingError(self, field, **update):
        record = self.iss.model_copy(update=update)
        with self.assertRaises(EncodingError) as ctx:
            self.codec.encode(record)
        self.assertEqual(ctx.exception.field, field)

    def test_non_finite_inclination(self):
        self.assertEncodingError("inclination", inclination=math.nan)

    def test_infinite_drag(self):
        self.assertEncodingError("bstar", bstar=math.inf)

    def test_mean_motion_too_wide(self):
        self.assertEncodingError("mean_motion", mean_motion=123.0)

    def test_eccentricity_out_of_range(self):
        self.assertEncodingError("eccentricity", eccentricity=1.2)

    def test_drag_exponent_overflow(self):
        self.assertEncodingError("bstar", bstar=5e12)

    def test_catalog_number_too_large(self):
        self.assertEncodingError("norad_cat_id", norad_cat_id=123456)

    def test_first_derivative_magnitude(self):
        self.assertEncodingError("mean_motion_dot", mean_motion_dot=1.5)

    def test_epoch_outside_two_digit_window(self):
        self.assertEncodingError("epoch", epoch=datetime(2060, 1, 1, tzinfo=timezone.utc))

    def test_encoding_error_is_value_error(self):
        record = self.iss.model_copy(update={"mean_motion": math.inf})
        with self.assertRaises(ValueError):
            self.codec.encode_line2(record)


class TestTLEDecoding(unittest.TestCase):
    """Decoding lines back into records."""

    def setUp(self):
        self.codec = TLECodec()

    def test_decode_iss(self):
        record = self.codec.decode(ISS_LINE1, ISS_LINE2, "ISS (ZARYA)")

        self.assertEqual(record.object_name, "ISS (ZARYA)")
        self.assertEqual(record.norad_cat_id, 25544)
        self.assertEqual(record.object_id, "1998-067A")
        self.assertAlmostEqual(record.inclination, 51.6416, places=4)
        self.assertAlmostEqual(record.eccentricity, 0.0004263, places=7)
        self.assertAlmostEqual(record.mean_motion, 15.49541986, places=8)
        self.assertAlmostEqual(record.bstar, 0.00021844, places=10)
        self.assertEqual(record.mean_motion_ddot, 0.0)
        self.assertEqual(record.rev_at_epoch, 41559)
        self.assertEqual(record.epoch.year, 2023)
        self.assertEqual(record.epoch.tzinfo, timezone.utc)

    def test_decode_then_encode_reproduces_lines(self):
        record = self.codec.decode(ISS_LINE1, ISS_LINE2)
        line1, line2 = self.codec.encode(record)
        self.assertEqual(line1, ISS_LINE1)
        self.assertEqual(line2, ISS_LINE2)

    def test_round_trip_preserves_numeric_fields(self):
        original = OrbitalElementRecord.model_validate(FALLBACK_CSS_ELEMENTS)
        decoded = self.codec.decode(*self.codec.encode(original))

        self.assertAlmostEqual(decoded.mean_motion, original.mean_motion, places=8)
        self.assertAlmostEqual(decoded.eccentricity, original.eccentricity, places=7)
        self.assertAlmostEqual(decoded.inclination, original.inclination, places=4)
        self.assertAlmostEqual(decoded.bstar, original.bstar, places=9)
        self.assertAlmostEqual(decoded.mean_motion_dot, original.mean_motion_dot, places=8)
        self.assertLess(abs((decoded.epoch - original.epoch).total_seconds()), 0.001)
        self.assertEqual(decoded.rev_at_epoch, original.rev_at_epoch)

        # Re-encoding decoded lines is stable
        self.assertEqual(self.codec.encode(decoded), self.codec.encode(original))

    def test_trailing_whitespace_is_ignored(self):
        record = self.codec.decode(ISS_LINE1 + "\r\n", ISS_LINE2 + " ")
        self.assertEqual(record.norad_cat_id, 25544)

    def test_short_line_rejected(self):
        with self.assertRaises(ElementFormatError):
            self.codec.decode(ISS_LINE1[:60], ISS_LINE2)

    def test_wrong_line_number_rejected(self):
        with self.assertRaises(ElementFormatError):
            self.codec.decode(ISS_LINE2, ISS_LINE1)

    def test_bad_checksum_rejected(self):
        bad = ISS_LINE1[:68] + "0"
        with self.assertRaises(ElementFormatError):
            self.codec.decode(bad, ISS_LINE2)

    def test_checksum_can_be_disabled(self):
        codec = TLECodec(verify_checksum=False)
        record = codec.decode(ISS_LINE1[:68] + "0", ISS_LINE2)
        self.assertEqual(record.norad_cat_id, 25544)

    def test_mismatched_catalog_numbers_rejected(self):
        other = "2 25545" + ISS_LINE2[7:]
        codec = TLECodec(verify_checksum=False)
        with self.assertRaises(ElementFormatError):
            codec.decode(ISS_LINE1, other)

    def test_garbage_columns_rejected(self):
        garbled = ISS_LINE2[:8] + "  xx.abc" + ISS_LINE2[16:]
        codec = TLECodec(verify_checksum=False)
        with self.assertRaises(ElementFormatError):
            codec.decode(ISS_LINE1, garbled)


if __name__ == "__main__":
    unittest.main()
