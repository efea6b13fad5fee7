import sys
import logging

from snowflake_id_generator import SnowflakeIDGenerator

logger = logging.getLogger(__name__)

LABELS = {
    "timestamp": "Timestamp",
    "datacenter_id": "Datacenter ID",
    "machine_id": "Machine ID",
    "sequence": "Sequence",
}

SHORT_LABELS = {
    "timestamp": "Timestamp",
    "datacenter_id": "DC",
    "machine_id": "MC",
    "sequence": "Sequence",
}


def split_binary(snowflake_id, generator):
    """Split the binary form of an ID into its sections.

    A timestamp too large for its section keeps all of its bits, so the
    timestamp string is then longer than the section width.

    Args:
        snowflake_id (int): The snowflake ID to split
        generator (SnowflakeIDGenerator): Generator whose layout applies

    Returns:
        list: (name, bits, binary string) tuples, sign bit first
    """
    binary = bin(snowflake_id)[2:].zfill(generator.TOTAL_BITS + 1)
    overflow = len(binary) > generator.TOTAL_BITS + 1
    sections = [("sign", 1, "0" if overflow else binary[0])]
    for name, bits, shift in generator.fields():
        end = len(binary) - shift
        if name == "timestamp":
            start = 0 if overflow else 1
        else:
            start = end - bits
        sections.append((name, bits, binary[start:end]))
    return sections


def bit_allocation_diagram(generator):
    """Draw the bit allocation of a layout as a box diagram.

    Args:
        generator (SnowflakeIDGenerator): Generator whose layout to draw

    Returns:
        str: The diagram, MSB on the left
    """
    cells = ["0"] + [f"{SHORT_LABELS[name]}({bits})" for name, bits, _ in generator.fields()]
    # Highest bit index of every section, then bit 0 at the right edge
    marks = [generator.TOTAL_BITS] + [shift + bits - 1 for _, bits, shift in generator.fields()]

    top = "┌" + "┬".join("─" * len(cell) for cell in cells) + "┐"
    middle = "│" + "│".join(cells) + "│"
    bottom = "└" + "┴".join("─" * len(cell) for cell in cells) + "┘"

    ruler = [" "] * (len(middle) + 2)
    # The sign cell is one character wide, so its mark ends at the sign bit
    ruler[0:2] = str(marks[0]).rjust(2)
    column = 1 + len(cells[0]) + 1
    for cell, mark in zip(cells[1:], marks[1:]):
        label = str(mark)
        ruler[column:column + len(label)] = label
        column += len(cell) + 1
    ruler[len(middle) - 2] = "0"

    header = "MSB" + " " * max(1, len(middle) - 6) + "LSB"
    return "\n".join([header, top, middle, bottom, "".join(ruler).rstrip()])


def visualize_binary(snowflake_id, generator=None, out=None):
    """Print a snowflake ID broken into its sections.

    Args:
        snowflake_id (int): The snowflake ID to visualize
        generator (SnowflakeIDGenerator, optional): Layout to use, default layout if omitted
        out (file, optional): Stream to write to, defaults to stdout
    """
    generator = generator or SnowflakeIDGenerator(0, 0, epoch=0)
    out = out or sys.stdout
    sections = split_binary(snowflake_id, generator)

    def emit(line=""):
        print(line, file=out)

    emit(f"\n=== Binary Representation of ID: {snowflake_id} ===\n")
    width = max(len(LABELS.get(name, "Sign bit")) for name, _, _ in sections) + 6
    for name, bits, value in sections:
        label = f"{LABELS.get(name, 'Sign bit')} ({bits})"
        emit(f"{label:<{width}}: {value}")
        if len(value) > bits:
            emit(f"WARNING: {LABELS[name].lower()} needs {len(value)} bits but its section has {bits}")

    emit("\n=== Decimal Values ===\n")
    for name, _, value in sections:
        label = LABELS.get(name, "Sign bit")
        emit(f"{label:<{width}}: {int(value, 2)}")

    emit("\n=== Visual Bit Allocation ===\n")
    emit(bit_allocation_diagram(generator))

    emit("\n=== Parsed ID ===\n")
    for key, value in generator.parse_id(snowflake_id).items():
        emit(f"{key.replace('_', ' ').title()}: {value}")
