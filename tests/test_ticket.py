from __future__ import annotations

import random
import unittest

from ticket_notifications.domain.ticket import (
    TICKET_NUMBER_PATTERN,
    Ticket,
    TicketValidationError,
    digital_root,
    generate_ticket_number,
    is_valid_serial_number,
    normalize_status,
    normalize_user_type,
    validate_ticket,
)


def make_ticket(**overrides: object) -> Ticket:
    base: dict[str, object] = {
        "id": "abc123def",
        "ticket_number": "TICKET/2026/1234",
        "serial_number": "123456789",
        "issue_related": "network",
        "priority": "high",
        "user_type": "multiuser",
        "status": "open",
    }
    return Ticket(**(base | overrides))


class SerialNumberTests(unittest.TestCase):
    def test_digital_root_reduces_repeatedly(self) -> None:
        self.assertEqual(digital_root("123456789"), 9)
        self.assertEqual(digital_root("99999999"), 9)
        self.assertEqual(digital_root("123456788"), 8)

    def test_valid_serial_numbers(self) -> None:
        self.assertTrue(is_valid_serial_number("123456789"))
        self.assertTrue(is_valid_serial_number("111111111"))

    def test_checksum_failure_is_invalid(self) -> None:
        self.assertFalse(is_valid_serial_number("123456788"))

    def test_wrong_length_or_non_digits_is_invalid(self) -> None:
        self.assertFalse(is_valid_serial_number("12345678"))
        self.assertFalse(is_valid_serial_number("1234567890"))
        self.assertFalse(is_valid_serial_number("12345678a"))
        self.assertFalse(is_valid_serial_number(""))
        self.assertFalse(is_valid_serial_number(None))

    def test_non_ascii_digits_are_invalid(self) -> None:
        self.assertFalse(is_valid_serial_number("12345678\u00b2"))
        self.assertFalse(is_valid_serial_number("\u0661\u0662\u0663\u0664\u0665\u0666\u0667\u0668\u0669"))


class TicketNumberTests(unittest.TestCase):
    def test_generated_number_uses_year_and_four_digits(self) -> None:
        number = generate_ticket_number(year=2026, rng=random.Random(7))

        self.assertTrue(number.startswith("TICKET/2026/"))
        self.assertRegex(number, TICKET_NUMBER_PATTERN)
        suffix = int(number.rsplit("/", 1)[1])
        self.assertGreaterEqual(suffix, 1000)
        self.assertLessEqual(suffix, 9999)


class NormalizationTests(unittest.TestCase):
    def test_status_variants_map_to_canonical_values(self) -> None:
        self.assertEqual(normalize_status("On Hold"), "on-hold")
        self.assertEqual(normalize_status("on_hold"), "on-hold")
        self.assertEqual(normalize_status(" Closed "), "closed")
        self.assertEqual(normalize_status(None), "open")
        self.assertEqual(normalize_status(""), "open")

    def test_unknown_status_raises(self) -> None:
        with self.assertRaises(TicketValidationError):
            normalize_status("archived")

    def test_user_type_variants(self) -> None:
        self.assertEqual(normalize_user_type("Multi-User"), "multiuser")
        self.assertEqual(normalize_user_type("single user"), "single-user")
        self.assertIsNone(normalize_user_type(None))
        with self.assertRaises(TicketValidationError):
            normalize_user_type("enterprise")


class TicketRuleTests(unittest.TestCase):
    def test_validate_accepts_well_formed_ticket(self) -> None:
        validate_ticket(make_ticket())

    def test_validate_rejects_bad_serial(self) -> None:
        with self.assertRaises(TicketValidationError):
            validate_ticket(make_ticket(serial_number="123456788"))

    def test_validate_rejects_superscript_digit_serial(self) -> None:
        with self.assertRaises(TicketValidationError):
            validate_ticket(make_ticket(serial_number="12345678\u00b2"))

    def test_validate_rejects_bad_ticket_number(self) -> None:
        with self.assertRaises(TicketValidationError):
            validate_ticket(make_ticket(ticket_number="T-1"))

    def test_validate_rejects_unknown_priority(self) -> None:
        with self.assertRaises(TicketValidationError):
            validate_ticket(make_ticket(priority="urgent"))

    def test_group_identifier_prefers_id(self) -> None:
        ticket = make_ticket(group_name="Support", group_id="1203@g.us")
        self.assertEqual(ticket.group_identifier, "1203@g.us")
        self.assertEqual(make_ticket(group_name="Support").group_identifier, "Support")
        self.assertIsNone(make_ticket().group_identifier)

    def test_is_closed(self) -> None:
        self.assertTrue(make_ticket(status="closed").is_closed)
        self.assertFalse(make_ticket(status="on-hold").is_closed)


if __name__ == "__main__":
    unittest.main()
