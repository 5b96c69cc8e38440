#
# progress.py
#
# Distributed under the MIT/X11 software license, see the accompanying
# file COPYING or http://www.opensource.org/licenses/mit-license.php.
#

"""Progress reports for long replays"""

import time

DEFAULT_BLOCK_INTERVAL = 10000


class ProgressReporter(object):
    """Reports replay progress to a Log

    A status line is written each time another hundredth of total_bytes has
    been read, and each time another block_interval blocks have been read. When
    both happen on the same block only one line is written.
    """

    def __init__(self, total_bytes, log, block_interval=DEFAULT_BLOCK_INTERVAL, clock=time.time):
        if block_interval < 1:
            raise ValueError('block_interval must be at least 1; got %d' % block_interval)
        self.total_bytes = total_bytes
        self.log = log
        self.block_interval = block_interval
        self.byte_interval = max(total_bytes // 100, 1)
        self.clock = clock
        self.start_time = clock()

        self.bytes_read = 0
        self.blocks_read = 0
        self.byte_reports = 0
        self.block_reports = 0

    def update(self, location):
        """Account for one more record; returns True if a line was written"""
        self.bytes_read += location.block_len
        self.blocks_read += 1

        report = False
        if self.bytes_read // self.byte_interval > self.byte_reports:
            self.byte_reports = self.bytes_read // self.byte_interval
            report = True
        if self.blocks_read // self.block_interval > self.block_reports:
            self.block_reports = self.blocks_read // self.block_interval
            report = True

        if report:
            self.log.write(self.status())
        return report

    def fraction(self):
        """Fraction of total_bytes read so far, between 0 and 1"""
        if self.total_bytes <= 0:
            return 1.0 if self.bytes_read > 0 else 0.0
        return min(max(self.bytes_read / self.total_bytes, 0.0), 1.0)

    def elapsed(self):
        return max(self.clock() - self.start_time, 0.0)

    def eta(self):
        """Estimated seconds remaining, None until something has been read"""
        fraction = self.fraction()
        if fraction == 0:
            return None
        return self.elapsed() * (1 - fraction) / fraction

    def status(self):
        eta = self.eta()
        return ('read %d blocks. Bytes read: %d. Percent complete: %f, time taken: %f, '
                'estimated time remaining: %s' % (
                    self.blocks_read, self.bytes_read, self.fraction() * 100,
                    self.elapsed(), 'unknown' if eta is None else '%f' % eta))
