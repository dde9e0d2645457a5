#!/usr/bin/env python3
# virtmem.py
"""
Command-line simulator.

    virtmem <backing_store> <input> -p <policy>

policy is 0 (FIFO) or 1 (LRU).
"""
import sys

from engine import MemoryConfig, POLICY_CODES, Translator, make_policy
from utils import BackingStore, ResourceError, format_report, format_translation, read_addresses

USAGE = "Usage: virtmem backingstore input -p replacementpolicy"


class ArgumentError(Exception):
    """Bad command line."""


def parse_args(argv):
    """
    Validate argv (program name included).

    Returns:
        Tuple[str, str, int]: backing store path, input path, policy code

    Raises:
        ArgumentError: On a wrong argument count, a missing -p, or a policy
            code other than 0 or 1
    """
    if len(argv) != 5 or argv[3] != "-p":
        raise ArgumentError(USAGE)
    try:
        policy = int(argv[4])
    except ValueError:
        raise ArgumentError(USAGE) from None
    if policy not in POLICY_CODES:
        raise ArgumentError(f"{USAGE}\nreplacementpolicy must be 0 (FIFO) or 1 (LRU)")
    return argv[1], argv[2], policy


def main(argv=None, config=None):
    argv = sys.argv if argv is None else argv
    config = config or MemoryConfig()
    try:
        backing_path, input_path, policy = parse_args(argv)
    except ArgumentError as e:
        print(e, file=sys.stderr)
        return 1

    try:
        addresses = read_addresses(input_path)
        with BackingStore(backing_path, config) as backing:
            translator = Translator(backing, make_policy(policy, config.frames), config, event_log_size=0)
            for t in translator.run(addresses):
                print(format_translation(t))
    except ResourceError as e:
        print(e, file=sys.stderr)
        return 1

    for line in format_report(translator.get_stats()):
        print(line)
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
