#
# staging.py
#
# Distributed under the MIT/X11 software license, see the accompanying
# file COPYING or http://www.opensource.org/licenses/mit-license.php.
#

"""Moving a database out of the way before it is rebuilt

Layout under the node's data directory:

    <path>/<network>/                     live database, rebuilt in place
    <path>/recovery/<network>/            staged original database
    <path>/recovery/<network>.rebuilding  present while a rebuild is under way
    <path>/recovery/<network>.<time>/     original kept after a finished rebuild

The original is moved with a rename, never copied, so at any time exactly one of
the locations holds it. Every step checks what is already on disk, so a run
interrupted at any point can simply be started again.
"""

import os
import shutil
import time

RECOVERY_DIR = 'recovery'
REBUILDING_SUFFIX = '.rebuilding'


class StagingError(Exception):
    """A directory could not be moved, created or removed"""


class DatabaseNotFoundError(Exception):
    """There is no database to recover"""


class StagingArea(object):
    def __init__(self, path, network):
        self.path = path
        self.network = network
        self.db_path = os.path.join(path, network)
        self.recovery_path = os.path.join(path, RECOVERY_DIR)
        self.staged_db_path = os.path.join(self.recovery_path, network)
        self.marker_path = self.staged_db_path + REBUILDING_SUFFIX

    def is_staged(self):
        return os.path.isdir(self.staged_db_path)

    def is_rebuilding(self):
        return os.path.exists(self.marker_path)

    def stage(self):
        """Move the live database into the recovery directory

        If an interrupted run already moved it, the move is skipped and
        whatever that run left at the live location is removed so the new
        database starts empty. A staged copy next to a live database that was
        not left by an interrupted run is refused.
        """
        if not os.path.isdir(self.path):
            raise DatabaseNotFoundError('Could not read path %s' % self.path)

        if not self.is_staged():
            if not os.path.isdir(self.db_path):
                raise DatabaseNotFoundError('Could not find database to recover at %s' % self.db_path)

            try:
                os.makedirs(self.recovery_path, mode=0o700, exist_ok=True)
                self._mark()
                os.rename(self.db_path, self.staged_db_path)
            except OSError as err:
                raise StagingError('Could not move %s to %s: %s' % (self.db_path, self.staged_db_path, err))

        elif not self.is_rebuilding():
            if os.path.lexists(self.db_path):
                raise StagingError('Both %s and %s hold a database; move one of them aside first'
                                   % (self.db_path, self.staged_db_path))
            try:
                self._mark()
            except OSError as err:
                raise StagingError('Could not create %s: %s' % (self.marker_path, err))

        if os.path.lexists(self.db_path):
            self._remove(self.db_path)

    def finalize(self, discard_staged=False):
        """Clean up after a successful rebuild

        The staged original is removed when discard_staged is set, otherwise it
        is renamed to a timestamped name next to the staging location so a
        later run never mistakes it for an interrupted one. The recovery
        directory is removed once it is empty.

        Returns the path the original was kept at, or None.
        """
        kept_path = None
        if os.path.lexists(self.staged_db_path):
            if discard_staged:
                self._remove(self.staged_db_path)
            else:
                kept_path = self._kept_path()
                try:
                    os.rename(self.staged_db_path, kept_path)
                except OSError as err:
                    raise StagingError('Could not move %s to %s: %s' % (self.staged_db_path, kept_path, err))

        if os.path.lexists(self.marker_path):
            self._remove(self.marker_path)

        if os.path.isdir(self.recovery_path) and not os.listdir(self.recovery_path):
            try:
                os.rmdir(self.recovery_path)
            except OSError as err:
                raise StagingError('Could not remove %s: %s' % (self.recovery_path, err))
        return kept_path

    def rollback(self):
        """Remove a partially built database; the staged original stays"""
        if os.path.lexists(self.db_path):
            self._remove(self.db_path)

    def _mark(self):
        with open(self.marker_path, 'w'):
            pass

    def _kept_path(self):
        base = '%s.%s' % (self.staged_db_path, time.strftime('%Y%m%d%H%M%S'))
        kept_path = base
        n = 1
        while os.path.lexists(kept_path):
            kept_path = '%s.%d' % (base, n)
            n += 1
        return kept_path

    def _remove(self, path):
        try:
            if os.path.isdir(path) and not os.path.islink(path):
                shutil.rmtree(path)
            else:
                os.remove(path)
        except OSError as err:
            raise StagingError('Could not remove %s: %s' % (path, err))
