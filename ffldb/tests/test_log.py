# Distributed under the MIT/X11 software license, see the accompanying
# file COPYING or http://www.opensource.org/licenses/mit-license.php.

import os
import shutil
import sys
import tempfile
import unittest

from ffldb.log import Log

class Test_Log(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.filename = os.path.join(self.tmpdir, 'recover.log')

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def read(self):
        with open(self.filename) as f:
            return f.read()

    def test_write_appends(self):
        log = Log(self.filename)
        log.write("first")
        log.close()
        log = Log(self.filename)
        log.write("second")
        log.close()
        self.assertEqual(self.read(), "first\nsecond\n")

    def test_debug(self):
        log = Log(self.filename)
        log.debug("hidden")
        log.close()
        self.assertEqual(self.read(), "")

        log = Log(self.filename, verbose=True)
        log.debug("shown")
        log.close()
        self.assertEqual(self.read(), "shown\n")

    def test_stdout_not_closed(self):
        log = Log()
        self.assertIs(log.fh, sys.stdout)
        log.close()
        self.assertFalse(sys.stdout.closed)
