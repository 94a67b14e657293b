from __future__ import annotations

import logging
import tempfile
import unittest
from types import SimpleNamespace

from waste_portal.config import Settings
from waste_portal.logging_setup import FILE_HANDLER_NAME, STREAM_HANDLER_NAME, setup_logging


class SettingsTests(unittest.TestCase):
    def test_database_url_is_normalised_to_psycopg(self) -> None:
        for raw in ('postgres://u:p@db/waste', 'postgresql://u:p@db/waste'):
            self.assertEqual(Settings(database_url=raw).database_url_normalized, 'postgresql+psycopg://u:p@db/waste')
        self.assertEqual(Settings(database_url='sqlite:///local.db').database_url_normalized, 'sqlite:///local.db')


class LoggingSetupTests(unittest.TestCase):
    def setUp(self) -> None:
        self.root = logging.getLogger()
        self.saved_handlers = list(self.root.handlers)
        self.saved_level = self.root.level

    def tearDown(self) -> None:
        for handler in list(self.root.handlers):
            if handler not in self.saved_handlers:
                self.root.removeHandler(handler)
                handler.close()
        self.root.setLevel(self.saved_level)
        for name in ('uvicorn', 'uvicorn.error', 'uvicorn.access'):
            lg = logging.getLogger(name)
            for handler in list(lg.handlers):
                if handler.get_name() in (STREAM_HANDLER_NAME, FILE_HANDLER_NAME):
                    lg.removeHandler(handler)

    def test_file_handler_is_added_once(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            settings = SimpleNamespace(log_level='debug', log_dir=tmp)

            path = setup_logging(settings)
            setup_logging(settings)

            names = [h.get_name() for h in self.root.handlers]
            self.assertEqual(names.count(FILE_HANDLER_NAME), 1)
            self.assertEqual(names.count(STREAM_HANDLER_NAME), 1)
            self.assertEqual(path.name, 'waste_portal.log')
            self.assertEqual(self.root.level, logging.DEBUG)
            self.assertFalse(logging.getLogger('uvicorn.access').propagate)

            for handler in list(self.root.handlers):
                if handler.get_name() == FILE_HANDLER_NAME:
                    self.root.removeHandler(handler)
                    handler.close()


if __name__ == '__main__':
    unittest.main()
