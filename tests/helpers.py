"""
Shared fixtures for tests that need a database.
"""
import os
import tempfile
import unittest

from idmanager.config import DatabaseConfig
from idmanager.database import create_engine_for, make_session_factory


class TempDatabaseTestCase(unittest.TestCase):
    """Creates a fresh SQLite file per test"""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.db_file = os.path.join(self.tmpdir.name, "identity.db")
        self.config = DatabaseConfig("sqlite", file=self.db_file)
        self.engine = create_engine_for(self.config)
        self.Session = make_session_factory(self.engine)

    def tearDown(self):
        self.engine.dispose()
        self.tmpdir.cleanup()
