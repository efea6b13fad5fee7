import time
import random
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from collections import defaultdict

from tabulate import tabulate

import snowflake_config
from snowflake_id_generator import SnowflakeIDGenerator, current_millis

logger = logging.getLogger(__name__)


class DistributedSystemSimulator:
    """Simulates a distributed system with multiple datacenters and machines."""

    def __init__(self, num_datacenters=2, num_machines_per_dc=3, epoch=None, max_delay_ms=0, **layout):
        """Initialize the simulator with the specified number of datacenters and machines.

        Args:
            num_datacenters (int): Number of datacenters to simulate
            num_machines_per_dc (int): Number of machines per datacenter
            epoch (int, optional): Epoch shared by every generator, defaults to now
            max_delay_ms (int): Upper bound of the random processing delay before each ID
            **layout: Bit widths passed to every SnowflakeIDGenerator
        """
        self.num_datacenters = num_datacenters
        self.num_machines_per_dc = num_machines_per_dc
        self.max_delay_ms = max_delay_ms
        self.generators = {}
        self.generated_ids = []
        self.id_lock = threading.Lock()

        # All generators share one epoch so their IDs are comparable
        epoch = epoch if epoch is not None else current_millis()
        for dc_id in range(num_datacenters):
            for machine_id in range(num_machines_per_dc):
                key = (dc_id, machine_id)
                self.generators[key] = SnowflakeIDGenerator(dc_id, machine_id, epoch=epoch, **layout)

    def generate_id(self, dc_id, machine_id):
        """Generate a unique ID from a specific datacenter and machine.

        Args:
            dc_id (int): Datacenter ID
            machine_id (int): Machine ID

        Returns:
            int: A unique ID
        """
        generator = self.generators.get((dc_id, machine_id))
        if not generator:
            raise ValueError(f"No generator found for datacenter {dc_id}, machine {machine_id}")

        if self.max_delay_ms:
            time.sleep(random.randint(0, self.max_delay_ms) / 1000)

        snowflake_id = generator.next_id()

        parsed = generator.parse_id(snowflake_id)
        with self.id_lock:
            self.generated_ids.append(parsed)

        return snowflake_id

    def _worker(self, work_item):
        dc_id, machine_id, count = work_item
        return [self.generate_id(dc_id, machine_id) for _ in range(count)]

    def simulate_load(self, ids_per_machine=100, max_workers=None):
        """Simulate load by generating multiple IDs from different machines.

        Args:
            ids_per_machine (int): Number of IDs to generate per machine
            max_workers (int, optional): Maximum number of worker threads

        Returns:
            list: List of all generated IDs
        """
        work_items = [(dc_id, machine_id, ids_per_machine) for dc_id, machine_id in self.generators]
        logger.info(f"Generating {ids_per_machine} IDs on each of {len(work_items)} machines")

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            all_ids = list(executor.map(self._worker, work_items))

        # Flatten the list of lists
        return [id_val for sublist in all_ids for id_val in sublist]

    def statistics(self):
        """Summarize the IDs generated so far.

        Returns:
            dict: Totals, duplicates and distributions by timestamp, machine and sequence
        """
        with self.id_lock:
            generated = list(self.generated_ids)

        seen = set()
        duplicates = []
        by_timestamp = defaultdict(int)
        by_machine = defaultdict(int)
        by_sequence = defaultdict(int)
        for id_info in generated:
            if id_info["id"] in seen:
                duplicates.append(id_info["id"])
            seen.add(id_info["id"])
            by_timestamp[id_info["timestamp"]] += 1
            by_machine[(id_info["datacenter_id"], id_info["machine_id"])] += 1
            by_sequence[id_info["sequence"]] += 1

        return {
            "total": len(generated),
            "unique": len(seen),
            "duplicates": duplicates,
            "by_timestamp": dict(by_timestamp),
            "by_machine": dict(by_machine),
            "by_sequence": dict(by_sequence),
        }

    def report(self, limit=10):
        """Render the results of the simulation.

        Args:
            limit (int): Maximum number of IDs to list

        Returns:
            str: Human readable report
        """
        stats = self.statistics()
        # Sort by ID (which sorts by time)
        with self.id_lock:
            sorted_ids = sorted(self.generated_ids, key=lambda x: x["id"])

        lines = ["=== Sample Generated IDs ==="]
        table_data = [
            [info["id"], info["generated_time"], info["datacenter_id"], info["machine_id"], info["sequence"]]
            for info in sorted_ids[:limit]
        ]
        lines.append(tabulate(table_data, headers=["ID", "Generated Time", "DC ID", "Machine ID", "Sequence"],
                              tablefmt="grid"))

        lines.append("\n=== Statistics ===")
        lines.append(f"Total IDs generated: {stats['total']}")
        lines.append(f"Unique IDs: {stats['unique']}")
        lines.append(f"Duplicate IDs: {len(stats['duplicates'])}")
        if stats["duplicates"]:
            lines.append(f"WARNING: {len(stats['duplicates'])} duplicate IDs found!")
        else:
            lines.append("SUCCESS: All IDs are unique!")

        # Timestamps with the most IDs
        busy_timestamps = sorted(stats["by_timestamp"].items(), key=lambda x: x[1], reverse=True)[:5]
        lines.append("\n=== Timestamp Distribution ===")
        lines.append(tabulate(busy_timestamps, headers=["Timestamp", "Count"], tablefmt="grid"))

        lines.append("\n=== Distribution by Datacenter and Machine ===")
        machine_table = [[dc_id, machine_id, count]
                         for (dc_id, machine_id), count in sorted(stats["by_machine"].items())]
        lines.append(tabulate(machine_table, headers=["DC ID", "Machine ID", "Count"], tablefmt="grid"))

        lines.append("\n=== Sequence Number Distribution ===")
        seq_table = sorted(stats["by_sequence"].items())[:10]
        lines.append(tabulate(seq_table, headers=["Sequence", "Count"], tablefmt="grid"))

        return "\n".join(lines)

    def display_results(self, limit=10):
        print(self.report(limit=limit))


if __name__ == "__main__":
    logging.basicConfig(level=snowflake_config.LOG_LEVEL, format=snowflake_config.LOG_FORMAT)

    # 2 datacenters, 3 machines per datacenter
    simulator = DistributedSystemSimulator(num_datacenters=2, num_machines_per_dc=3, max_delay_ms=10)
    simulator.simulate_load(ids_per_machine=100)
    simulator.display_results(limit=10)

    logger.info("Burst test (high concurrency)...")
    simulator.max_delay_ms = 0
    simulator.simulate_load(ids_per_machine=2000)
    logger.info(f"Total IDs after burst test: {len(simulator.generated_ids)}")
