"""Pure parsers for the system probes run on a remote board.

Every function here takes command output text and returns a value; none of
them touch a transport. Strict ``parse_*`` helpers raise ParseError on
unexpected shapes, the collector decides what to show instead.
"""

import re

from sbctool.errors import ParseError

from .soc_table import CPU_IMPLEMENTERS, match_compatible

UNKNOWN = "Unknown"

# Placeholders echoed by the batched probes when a file is missing.
_SENTINELS = ("No model", "No compatible", "No os-release")


def clean_probe(output: str | None) -> str:
    """Strip NUL bytes and whitespace; map probe placeholders to ''."""
    if output is None:
        return ""
    text = output.replace("\0", "").strip()
    if text in _SENTINELS:
        return ""
    return text


def parse_kernel(uname: str) -> str:
    """Kernel name and release: tokens 1 and 3 of ``uname -a``."""
    parts = uname.split()
    if not parts:
        return UNKNOWN
    if len(parts) > 2:
        return f"{parts[0]} {parts[2]}"
    return parts[0]


def parse_architecture(uname: str) -> str:
    """Machine architecture: the 13th token of ``uname -a``."""
    parts = uname.split()
    return parts[12] if len(parts) > 12 else "unknown"


def _cpuinfo_value(line: str) -> str:
    parts = line.split(":", 1)
    return parts[1].strip() if len(parts) > 1 else ""


def chip_from_cpuinfo(cpuinfo: str) -> str | None:
    """Chip label from a cpuinfo ``Hardware`` line or the CPU implementer code."""
    for line in cpuinfo.splitlines():
        if line.startswith("Hardware"):
            hardware = _cpuinfo_value(line)
            if hardware and hardware != "BCM2835":
                return hardware
        if line.startswith("CPU implementer"):
            label = CPU_IMPLEMENTERS.get(_cpuinfo_value(line))
            if label:
                return label
    return None


def resolve_chip(model: str, compatible: str, cpuinfo: str) -> str | None:
    """Pick the chip label by precedence.

    A non-empty device-tree model wins verbatim, then the compatible string
    matched against the SoC table, then cpuinfo.
    """
    model = clean_probe(model)
    if model:
        return model
    compatible = clean_probe(compatible)
    if compatible:
        chip = match_compatible(compatible)
        if chip:
            return chip
    return chip_from_cpuinfo(cpuinfo or "")


def parse_cpu_description(cpuinfo: str) -> str:
    """Describe the CPU from cpuinfo.

    Uses ``model name``/``Processor`` when present, else builds
    ``<implementer> v<arch> (<n> cores)`` from ARM fields.
    """
    for line in cpuinfo.splitlines():
        if line.startswith("model name") or line.startswith("Processor"):
            value = _cpuinfo_value(line)
            if value:
                return value

    implementer = None
    architecture = None
    processor_count = 0
    for line in cpuinfo.splitlines():
        if line.startswith("processor"):
            processor_count += 1
        elif line.startswith("CPU implementer"):
            implementer = _cpuinfo_value(line)
        elif line.startswith("CPU architecture"):
            architecture = _cpuinfo_value(line)

    words = []
    if implementer is not None:
        words.append(CPU_IMPLEMENTERS.get(implementer, UNKNOWN))
    if architecture:
        words.append(f"v{architecture}")
    if processor_count > 0:
        words.append(f"({processor_count} cores)")
    if not words:
        return f"{processor_count} cores"
    return " ".join(words)


def format_memory_kb(kb: int) -> str:
    """Whole GB when at least 1 GB, else whole MB."""
    mb = kb // 1024
    gb = mb // 1024
    if gb > 0:
        return f"{gb} GB"
    return f"{mb} MB"


def parse_meminfo_total_kb(meminfo: str) -> int:
    """Read MemTotal (kB) from /proc/meminfo."""
    for line in meminfo.splitlines():
        if line.startswith("MemTotal"):
            parts = line.split()
            if len(parts) > 1 and parts[1].isdigit():
                return int(parts[1])
    raise ParseError("MemTotal not found in meminfo")


def parse_free_total_kb(free_output: str) -> int:
    """Read total memory from Android ``free`` output, which counts bytes."""
    for line in free_output.splitlines():
        if line.startswith("Mem:"):
            parts = line.split()
            if len(parts) > 1 and parts[1].isdigit():
                return int(parts[1]) // 1024
    raise ParseError("Mem: line not found in free output")


def format_uptime(seconds: float) -> str:
    """Render seconds as ``{d}d {h}h {m}m``, dropping leading zero units."""
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    minutes = int((seconds % 3600) // 60)
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def parse_proc_uptime(uptime: str) -> float:
    """Seconds since boot from /proc/uptime."""
    parts = uptime.split()
    try:
        return float(parts[0])
    except (IndexError, ValueError):
        raise ParseError(f"Unexpected /proc/uptime content: {uptime!r}") from None


_UPTIME_DAYS_RE = re.compile(r"(\d+)\s+days?")
_UPTIME_CLOCK_RE = re.compile(r"(\d+):(\d{2})")
_UPTIME_MIN_RE = re.compile(r"(\d+)\s+min")


def parse_uptime_command(output: str) -> float:
    """Seconds since boot from ``uptime`` output.

    Handles ``up 1:42,``, ``up 3 days, 2:10,`` and ``up 12 min,`` forms.
    """
    _, sep, rest = output.partition(" up ")
    if not sep:
        raise ParseError(f"Unexpected uptime output: {output!r}")
    span = rest.split("user")[0]
    days = _UPTIME_DAYS_RE.search(span)
    clock = _UPTIME_CLOCK_RE.search(span)
    minutes = _UPTIME_MIN_RE.search(span)
    if not (days or clock or minutes):
        raise ParseError(f"Unexpected uptime output: {output!r}")

    seconds = 0.0
    if days:
        seconds += int(days.group(1)) * 86400
    if clock:
        seconds += int(clock.group(1)) * 3600 + int(clock.group(2)) * 60
    elif minutes:
        seconds += int(minutes.group(1)) * 60
    return seconds


def parse_release_field(content: str, key: str) -> str:
    """Value of ``KEY=...`` from an os-release or lsb-release file."""
    for line in content.splitlines():
        name, sep, value = line.partition("=")
        if sep and name.strip() == key:
            value = value.strip().strip('"')
            if value:
                return value
    raise ParseError(f"{key} not found")


def android_chip(manufacturer: str, model: str, board: str) -> str | None:
    """``<manufacturer> <model> (<board>)``; the board only when it adds detail."""
    manufacturer, model, board = manufacturer.strip(), model.strip(), board.strip()
    label = " ".join(p for p in (manufacturer, model) if p)
    if label and board and board != model:
        label = f"{label} ({board})"
    return label or board or None


def android_os(release: str, display_id: str) -> str | None:
    """``Android <release> (<display id>)``."""
    release, display_id = release.strip(), display_id.strip()
    words = []
    if release:
        words.append(f"Android {release}")
    if display_id:
        words.append(f"({display_id})")
    return " ".join(words) or None
