# Distributed under the MIT/X11 software license, see the accompanying
# file COPYING or http://www.opensource.org/licenses/mit-license.php.

import os
import shutil
import tempfile
import unittest

from ffldb.staging import *

def listing(path):
    r = []
    for dirpath, dirnames, filenames in os.walk(path):
        for name in filenames:
            with open(os.path.join(dirpath, name), 'rb') as fd:
                r.append((os.path.relpath(os.path.join(dirpath, name), path), fd.read()))
    return sorted(r)

class Test_StagingArea(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.area = StagingArea(self.tmpdir, 'mainnet')
        os.makedirs(os.path.join(self.area.db_path, 'blocks_ffldb'))
        for name, data in (('000000000.fdb', b'a'*10), ('000000001.fdb', b'b'*5)):
            with open(os.path.join(self.area.db_path, 'blocks_ffldb', name), 'wb') as fd:
                fd.write(data)
        self.original = listing(self.area.db_path)

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_paths(self):
        self.assertEqual(self.area.db_path, os.path.join(self.tmpdir, 'mainnet'))
        self.assertEqual(self.area.staged_db_path, os.path.join(self.tmpdir, 'recovery', 'mainnet'))

    def test_stage(self):
        self.assertFalse(self.area.is_staged())
        self.area.stage()
        self.assertTrue(self.area.is_staged())
        self.assertFalse(os.path.exists(self.area.db_path))
        self.assertEqual(listing(self.area.staged_db_path), self.original)

    def test_stage_twice(self):
        self.area.stage()
        self.area.stage()
        self.assertFalse(os.path.exists(self.area.db_path))
        self.assertEqual(listing(self.area.staged_db_path), self.original)
        self.assertEqual(sorted(os.listdir(self.area.recovery_path)), ['mainnet', 'mainnet.rebuilding'])

    def test_stage_removes_partial_database(self):
        self.area.stage()
        # interrupted rebuild left a new database behind
        os.makedirs(os.path.join(self.area.db_path, 'blocks_ffldb'))
        with open(os.path.join(self.area.db_path, 'blocks_ffldb', '000000000.fdb'), 'wb') as fd:
            fd.write(b'partial')

        self.area.stage()
        self.assertFalse(os.path.exists(self.area.db_path))
        self.assertEqual(listing(self.area.staged_db_path), self.original)

    def test_stage_with_empty_recovery_dir(self):
        # crash after creating the recovery directory, before the move
        os.makedirs(self.area.recovery_path)
        self.area.stage()
        self.assertEqual(listing(self.area.staged_db_path), self.original)

    def test_missing_database(self):
        shutil.rmtree(self.area.db_path)
        with self.assertRaises(DatabaseNotFoundError):
            self.area.stage()
        self.assertFalse(os.path.exists(self.area.recovery_path))

    def test_missing_path(self):
        area = StagingArea(os.path.join(self.tmpdir, 'nope'), 'mainnet')
        with self.assertRaises(DatabaseNotFoundError):
            area.stage()

    def test_rollback(self):
        self.area.stage()
        os.makedirs(self.area.db_path)
        self.area.rollback()
        self.assertFalse(os.path.exists(self.area.db_path))
        self.assertEqual(listing(self.area.staged_db_path), self.original)
        # nothing to roll back
        self.area.rollback()

    def test_finalize_keeps_staged(self):
        self.area.stage()
        os.makedirs(self.area.db_path)
        kept_path = self.area.finalize()
        self.assertTrue(os.path.basename(kept_path).startswith('mainnet.'))
        self.assertEqual(listing(kept_path), self.original)
        self.assertFalse(self.area.is_staged())
        self.assertFalse(self.area.is_rebuilding())
        self.assertEqual(os.listdir(self.area.recovery_path), [os.path.basename(kept_path)])

    def test_finalize_twice_keeps_both(self):
        self.area.stage()
        first = self.area.finalize()
        os.rename(first, self.area.db_path)
        self.area.stage()
        second = self.area.finalize()
        self.assertNotEqual(first, second)
        self.assertTrue(os.path.isdir(second))

    def test_finalize_discard(self):
        self.area.stage()
        self.assertIsNone(self.area.finalize(discard_staged=True))
        self.assertFalse(os.path.exists(self.area.recovery_path))

    def test_finalize_other_network_staged(self):
        self.area.stage()
        os.makedirs(os.path.join(self.area.recovery_path, 'testnet'))
        self.assertIsNone(self.area.finalize(discard_staged=True))
        self.assertEqual(os.listdir(self.area.recovery_path), ['testnet'])

    def test_stage_after_finalize(self):
        self.area.stage()
        # rebuilt database, later extended by the node
        os.makedirs(self.area.db_path)
        with open(os.path.join(self.area.db_path, 'newer'), 'wb') as fd:
            fd.write(b'n')
        self.area.finalize()
        live = listing(self.area.db_path)

        self.area.stage()
        self.assertEqual(listing(self.area.staged_db_path), live)
        self.assertFalse(os.path.exists(self.area.db_path))

    def test_staged_and_live_refused(self):
        # a staged copy without a rebuild under way, next to a live database
        os.makedirs(self.area.staged_db_path)
        with self.assertRaises(StagingError):
            self.area.stage()
        self.assertEqual(listing(self.area.db_path), self.original)

    def test_staged_without_live(self):
        os.makedirs(self.area.recovery_path)
        os.rename(self.area.db_path, self.area.staged_db_path)
        self.area.stage()
        self.assertTrue(self.area.is_rebuilding())
        self.assertEqual(listing(self.area.staged_db_path), self.original)

    def test_rollback_keeps_marker(self):
        self.area.stage()
        os.makedirs(self.area.db_path)
        self.area.rollback()
        self.assertTrue(self.area.is_rebuilding())
        self.area.stage()
        self.assertEqual(listing(self.area.staged_db_path), self.original)

    def test_move_failure(self):
        # a file where the recovery directory should be
        with open(self.area.recovery_path, 'wb') as fd:
            fd.write(b'x')
        with self.assertRaises(StagingError):
            self.area.stage()
        self.assertEqual(listing(self.area.db_path), self.original)
