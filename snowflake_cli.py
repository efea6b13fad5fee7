#!/usr/bin/env python3
"""
Command line entry point for the Snowflake ID generator.
Generates, parses, visualizes and simulates IDs from a single script.
"""

import sys
import logging
import argparse

from tabulate import tabulate

import snowflake_config
from snowflake_errors import SnowflakeError
from snowflake_id_generator import SnowflakeIDGenerator
from snowflake_simulator import DistributedSystemSimulator
from snowflake_visualizer import visualize_binary

logger = logging.getLogger("snowflake_cli")

PARSED_HEADERS = ["ID", "Generated Time", "Timestamp", "DC ID", "Machine ID", "Sequence"]


def add_layout_arguments(parser):
    """Add the bit layout options shared by every subcommand."""
    parser.add_argument("--sequence-bits", type=int, default=snowflake_config.SEQUENCE_BITS,
                        help="Width of the sequence section")
    parser.add_argument("--machine-id-bits", type=int, default=snowflake_config.MACHINE_ID_BITS,
                        help="Width of the machine ID section")
    parser.add_argument("--datacenter-id-bits", type=int, default=snowflake_config.DATACENTER_ID_BITS,
                        help="Width of the datacenter ID section")
    parser.add_argument("--epoch", type=int, default=snowflake_config.EPOCH,
                        help="Custom epoch in milliseconds")


def add_identity_arguments(parser):
    parser.add_argument("--datacenter-id", type=int, default=snowflake_config.DATACENTER_ID,
                        help="Datacenter ID of this node")
    parser.add_argument("--machine-id", type=int, default=snowflake_config.MACHINE_ID,
                        help="Machine ID of this node")


def layout_options(args):
    return {
        "sequence_bits": args.sequence_bits,
        "machine_id_bits": args.machine_id_bits,
        "datacenter_id_bits": args.datacenter_id_bits,
    }


def build_generator(args, epoch=None):
    return SnowflakeIDGenerator(
        getattr(args, "datacenter_id", 0),
        getattr(args, "machine_id", 0),
        epoch=args.epoch if args.epoch is not None else epoch,
        **layout_options(args),
    )


def parsed_row(parsed):
    return [parsed["id"], parsed["generated_time"], parsed["timestamp"],
            parsed["datacenter_id"], parsed["machine_id"], parsed["sequence"]]


def parse_int_id(value):
    try:
        snowflake_id = int(value)
    except ValueError:
        raise SnowflakeError(f"'{value}' is not a valid integer ID") from None
    if snowflake_id < 0:
        raise SnowflakeError(f"'{value}' is not a valid snowflake ID")
    return snowflake_id


def run_generate(args):
    generator = build_generator(args)
    ids = [generator.next_id() for _ in range(args.count)]
    if args.parse:
        print(tabulate([parsed_row(generator.parse_id(id_val)) for id_val in ids],
                       headers=PARSED_HEADERS, tablefmt="grid"))
    else:
        for id_val in ids:
            print(id_val)


def run_parse(args):
    # Without an explicit epoch, timestamps are read as Unix milliseconds
    generator = build_generator(args, epoch=0)
    rows = [parsed_row(generator.parse_id(parse_int_id(value))) for value in args.ids]
    print(tabulate(rows, headers=PARSED_HEADERS, tablefmt="grid"))


def run_visualize(args):
    if args.id is None:
        print("No ID provided. Generating a new ID...")
        generator = build_generator(args)
        snowflake_id = generator.next_id()
        print(f"Generated ID: {snowflake_id}")
    else:
        generator = build_generator(args, epoch=0)
        snowflake_id = parse_int_id(args.id)
    visualize_binary(snowflake_id, generator)


def run_simulate(args):
    simulator = DistributedSystemSimulator(
        num_datacenters=args.datacenters,
        num_machines_per_dc=args.machines,
        epoch=args.epoch,
        max_delay_ms=args.max_delay_ms,
        **layout_options(args),
    )
    print(f"Simulating {args.datacenters} datacenters with {args.machines} machines each")
    simulator.simulate_load(ids_per_machine=args.ids_per_machine, max_workers=args.workers)
    simulator.display_results(limit=args.limit)
    return 1 if simulator.statistics()["duplicates"] else 0


def build_parser():
    parser = argparse.ArgumentParser(description="Snowflake ID Generator")
    parser.add_argument("--log-level", default=snowflake_config.LOG_LEVEL,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Logging level")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    generate_parser = subparsers.add_parser("generate", help="Generate IDs")
    generate_parser.add_argument("-n", "--count", type=int, default=1, help="Number of IDs to generate")
    generate_parser.add_argument("--parse", action="store_true", help="Show the sections of each ID")
    add_identity_arguments(generate_parser)
    add_layout_arguments(generate_parser)
    generate_parser.set_defaults(handler=run_generate)

    parse_parser = subparsers.add_parser("parse", help="Parse existing IDs")
    parse_parser.add_argument("ids", nargs="+", help="IDs to parse")
    add_layout_arguments(parse_parser)
    parse_parser.set_defaults(handler=run_parse)

    vis_parser = subparsers.add_parser("visualize", help="Show the bit layout of an ID")
    vis_parser.add_argument("id", nargs="?", help="ID to visualize, a new one is generated if omitted")
    add_identity_arguments(vis_parser)
    add_layout_arguments(vis_parser)
    vis_parser.set_defaults(handler=run_visualize)

    sim_parser = subparsers.add_parser("simulate", help="Run the distributed system simulator")
    sim_parser.add_argument("--datacenters", type=int, default=2, help="Number of datacenters")
    sim_parser.add_argument("--machines", type=int, default=3, help="Machines per datacenter")
    sim_parser.add_argument("--ids-per-machine", type=int, default=100, help="IDs to generate per machine")
    sim_parser.add_argument("--workers", type=int, default=None, help="Worker threads")
    sim_parser.add_argument("--max-delay-ms", type=int, default=0, help="Random delay before each ID")
    sim_parser.add_argument("--limit", type=int, default=10, help="Number of sample IDs to show")
    add_layout_arguments(sim_parser)
    sim_parser.set_defaults(handler=run_simulate)

    return parser


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level, format=snowflake_config.LOG_FORMAT)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return args.handler(args) or 0
    except SnowflakeError as e:
        logger.error(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
