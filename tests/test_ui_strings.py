import unittest

from proclink import errors
from proclink.ui_strings import ERROR_MESSAGES, SUCCESS_MESSAGES, error_message, success_message


class UiStringsTest(unittest.TestCase):
    def test_every_error_class_has_a_message(self) -> None:
        for name in dir(errors):
            candidate = getattr(errors, name)
            if isinstance(candidate, type) and issubclass(candidate, errors.AppError):
                self.assertIn(candidate.default_message_key, ERROR_MESSAGES, name)

    def test_messages_are_not_empty(self) -> None:
        for key, message in {**ERROR_MESSAGES, **SUCCESS_MESSAGES}.items():
            self.assertTrue(message.strip(), f"empty message: {key}")

    def test_lookup_fallbacks(self) -> None:
        self.assertEqual(error_message("missing_key", "fallback"), "fallback")
        self.assertEqual(error_message("missing_key"), "missing_key")
        self.assertEqual(success_message("missing_key"), "missing_key")


if __name__ == "__main__":
    unittest.main()
