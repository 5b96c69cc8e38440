#
# cli.py
#
# Distributed under the MIT/X11 software license, see the accompanying
# file COPYING or http://www.opensource.org/licenses/mit-license.php.
#

"""ffldb-recover: rebuild a node's block index from its flat files

The node must not be running while this runs.
"""

import re
import sys

import ffldb
from ffldb.log import Log
from ffldb.progress import DEFAULT_BLOCK_INTERVAL
from ffldb.recover import recover

TRUE_VALUES = ('1', 'true', 'yes', 'on')


def read_settings(filename):
    """Read key=value lines from a settings file

    Lines that don't look like a setting, including # comments, are skipped.
    """
    settings = {}
    with open(filename) as f:
        for line in f:
            m = re.search(r'^(\w+)\s*=\s*(\S.*)$', line)
            if m is None:
                continue
            settings[m.group(1)] = m.group(2).strip()
    return settings


def parser():
    import argparse
    parser = argparse.ArgumentParser(
        description='Rebuild the block index of a node database by replaying its flat block files.',
        epilog='Stop the node first; the database directory must not be in use.')
    parser.add_argument(
        'path',
        help='the node data directory, holding one subdirectory per network')
    parser.add_argument(
        'network', nargs='?', default=None,
        help='one of %s (default mainnet)' % ', '.join(sorted(ffldb.NETWORKS)))
    parser.add_argument(
        '-c', '--config', metavar='FILE',
        help='settings file of key=value lines')
    parser.add_argument(
        '--log', metavar='FILE',
        help='append log to FILE instead of stdout ("-" for stdout)')
    parser.add_argument(
        '-v', '--verbose', action='store_true', default=None,
        help='log every block accepted')
    parser.add_argument(
        '--check-pow', action='store_true', default=None,
        help='check proof-of-work of replayed blocks')
    parser.add_argument(
        '--discard-staged', action='store_true', default=None,
        help='delete the moved original database after a successful rebuild')
    parser.add_argument(
        '--report-interval', type=int, metavar='N', default=None,
        help='report progress every N blocks (default %d)' % DEFAULT_BLOCK_INTERVAL)
    return parser


def load_settings(args):
    """Merge the settings file and the command line; the command line wins"""
    settings = {}
    if args.config is not None:
        settings = read_settings(args.config)

    for name in ('network', 'log', 'verbose', 'check_pow', 'discard_staged', 'report_interval'):
        value = getattr(args, name)
        if value is not None:
            settings[name] = value

    if 'network' not in settings:
        settings['network'] = 'mainnet'
    if 'log' not in settings or settings['log'] == '-':
        settings['log'] = None
    for name in ('verbose', 'check_pow', 'discard_staged'):
        value = settings.get(name, False)
        if not isinstance(value, bool):
            value = str(value).lower() in TRUE_VALUES
        settings[name] = value
    settings['report_interval'] = int(settings.get('report_interval', DEFAULT_BLOCK_INTERVAL))
    if settings['report_interval'] < 1:
        raise ValueError('report_interval must be at least 1, not %d' % settings['report_interval'])

    return settings


def recover_database_procedure(argv):
    """Run a recovery, returning (exit status, one line result)"""
    args = parser().parse_args(argv)

    try:
        settings = load_settings(args)
        log = Log(settings['log'], verbose=settings['verbose'])
    except (OSError, ValueError) as err:
        return 1, str(err)

    try:
        blocks = recover(args.path, settings['network'], log,
                         check_pow=settings['check_pow'],
                         discard_staged=settings['discard_staged'],
                         block_interval=settings['report_interval'])
    except Exception as err:
        return 1, str(err)
    finally:
        log.close()

    return 0, "There were %d blocks read." % blocks


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    status, message = recover_database_procedure(argv)
    print(message)
    return status


if __name__ == '__main__':
    sys.exit(main())
