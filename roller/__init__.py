"""Rolling image replacement for EC2 auto scaling groups."""
import argparse as _argparse

from roller import _runner


def parse() -> dict:
    """Parse command line arguments to invoke the fleet roller."""
    parser = _argparse.ArgumentParser(prog="fleet-roller")
    parser.add_argument("group_name")
    parser.add_argument("image_id")
    parser.add_argument("-p", "--profile", dest="aws_profile")
    parser.add_argument("--region", dest="aws_region")
    parser.add_argument("--pretty-print", action="store_true")
    parser.add_argument("--config-path")
    parser.add_argument("--state-path")
    return vars(parser.parse_args())


def main():
    """Execute the fleet roller."""
    return 1 if _runner.main(parse()) else 0
