#
# log.py
#
# Distributed under the MIT/X11 software license, see the accompanying
# file COPYING or http://www.opensource.org/licenses/mit-license.php.
#

import sys


class Log(object):
	"""Line oriented log, appended to a file or written to stdout

	debug() lines are only written when the log is verbose.
	"""
	def __init__(self, filename=None, verbose=False):
		if filename is not None:
			self.fh = open(filename, 'a', buffering=1)
		else:
			self.fh = sys.stdout
		self.verbose = verbose

	def write(self, msg):
		line = "%s\n" % msg
		self.fh.write(line)

	def debug(self, msg):
		if self.verbose:
			self.write(msg)

	def close(self):
		if self.fh is not sys.stdout:
			self.fh.close()
