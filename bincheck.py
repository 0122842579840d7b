#!python3 -X utf8

import sys
import os
import argparse
import logging

##################################################################################################
# Main
##################################################################################################

def main() -> int:
    if sys.platform.lower() == "win32":
        os.system('color')
        os.system('chcp 65001 > nul')
        sys.stdout.reconfigure(encoding='utf-8') # type: ignore
        sys.stderr.reconfigure(encoding='utf-8') # type: ignore

    logging.basicConfig(level=logging.INFO, format='%(message)s')

    parser = argparse.ArgumentParser()
    subparsers = parser.add_subparsers(dest='command')

    cmd = subparsers.add_parser('check')
    cmd.add_argument('path', type=str, nargs='?', default='.')
    cmd.add_argument('checks', type=str, nargs='*', help='List of checks to perform. If not provided, all checks will be performed.')
    cmd.add_argument('--debug', action='store_true', help='Log each git and file invocation.')

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        return 0

    match args.command:
        case 'check':
            if args.debug:
                logging.getLogger().setLevel(logging.DEBUG)
            from bincheck.tasks.check import check_main
            return check_main(args.path, args.checks or None)

        case _:
            raise ValueError(f"Unknown command: {args.command}")

if __name__ == '__main__':
    sys.exit(main())
