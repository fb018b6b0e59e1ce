import logging
import unittest

from Smart_Sight.logging_config import setup_logging


class TestSetupLogging(unittest.TestCase):
    def setUp(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        library_level = logging.getLogger("sight_kit").level

        def restore() -> None:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
            logging.getLogger("sight_kit").setLevel(library_level)

        self.addCleanup(restore)

    def test_single_console_handler(self) -> None:
        root = setup_logging("debug")
        self.assertIs(root, logging.getLogger())
        self.assertEqual(root.level, logging.DEBUG)
        self.assertEqual(len(root.handlers), 1)
        self.assertEqual(root.handlers[0].level, logging.DEBUG)

        setup_logging("WARNING")
        self.assertEqual(len(root.handlers), 1)
        self.assertEqual(root.level, logging.WARNING)

    def test_only_root_logger_is_configured(self) -> None:
        logging.getLogger("sight_kit").setLevel(logging.NOTSET)
        setup_logging("INFO")
        self.assertEqual(logging.getLogger("sight_kit").level, logging.NOTSET)
        self.assertEqual(logging.getLogger("sight_kit").getEffectiveLevel(), logging.INFO)

    def test_unknown_level_rejected(self) -> None:
        with self.assertRaises(ValueError):
            setup_logging("chatty")


if __name__ == "__main__":
    unittest.main()
