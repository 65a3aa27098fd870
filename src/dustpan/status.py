"""System status collection for the dustpan dashboard."""

import glob
import os
import platform
import re
import shutil
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import BaseModel, Field

# Mount prefixes treated as removable / external media
EXTERNAL_PREFIXES = ("/Volumes/", "/media/", "/mnt/", "/run/media/")

# Filesystem types on Linux that are real storage
_REAL_FS_TYPES = {
    "ext2", "ext3", "ext4", "xfs", "btrfs", "zfs", "f2fs", "vfat", "exfat",
    "ntfs", "ntfs3", "fuseblk", "apfs", "hfsplus",
}

PS_TIMEOUT = 1


class ProcessInfo(BaseModel):
    """A process in the top-by-CPU list."""

    name: str = Field(..., description="Command name without path")
    cpu: float = Field(0.0, description="CPU percent")
    memory: float = Field(0.0, description="Memory percent")


class DiskStatus(BaseModel):
    """Usage of one mounted filesystem."""

    mount: str = Field(..., description="Mount point")
    device: str = Field("", description="Backing device")
    total_bytes: int = Field(0, description="Size in bytes")
    used_bytes: int = Field(0, description="Used bytes")
    free_bytes: int = Field(0, description="Free bytes")
    external: bool = Field(False, description="Removable or external media")

    @property
    def used_percent(self) -> float:
        """Percentage of the filesystem in use."""
        return (self.used_bytes / self.total_bytes) * 100 if self.total_bytes > 0 else 0


class BatteryStatus(BaseModel):
    """Battery charge."""

    percent: float = Field(..., description="Charge percent")
    charging: bool = Field(False, description="Whether the battery is charging")


class SystemStatus(BaseModel):
    """Snapshot shown by the status dashboard."""

    timestamp: datetime = Field(default_factory=datetime.now)
    hostname: str = Field("", description="Host name")
    cpu_count: int = Field(0, description="Logical CPUs")
    load_average: tuple[float, float, float] = Field((0.0, 0.0, 0.0))
    disks: list[DiskStatus] = Field(default_factory=list)
    processes: list[ProcessInfo] = Field(default_factory=list)
    battery: Optional[BatteryStatus] = None


def _run(cmd: list[str], timeout: float = PS_TIMEOUT) -> Optional[str]:
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("{} failed: {}", cmd[0], e)
        return None
    if result.returncode != 0:
        return None
    return result.stdout


def parse_ps_output(output: str, limit: int = 5) -> list[ProcessInfo]:
    """
    Parse "pcpu pmem comm" output of ps, header included.

    Rows with fewer than three fields are skipped. Only the first
    `limit` rows after the header are considered.
    """
    processes = []
    lines = output.strip().splitlines()[1 : limit + 1]
    for line in lines:
        fields = line.split()
        if len(fields) < 3:
            continue
        try:
            cpu = float(fields[0])
        except ValueError:
            cpu = 0.0
        try:
            memory = float(fields[1])
        except ValueError:
            memory = 0.0
        name = fields[-1].rsplit("/", 1)[-1]
        processes.append(ProcessInfo(name=name, cpu=cpu, memory=memory))
    return processes


def collect_top_processes(limit: int = 5) -> list[ProcessInfo]:
    """Top processes by CPU, empty when ps is unavailable or fails."""
    system = platform.system()
    if system == "Darwin":
        cmd = ["ps", "-Aceo", "pcpu,pmem,comm", "-r"]
    elif system == "Linux":
        cmd = ["ps", "-Aeo", "pcpu,pmem,comm", "--sort=-pcpu"]
    else:
        return []

    output = _run(cmd)
    if output is None:
        return []
    return parse_ps_output(output, limit)


def is_external_mount(mount: str) -> bool:
    """Whether a mount point looks like removable media."""
    return any(mount.startswith(prefix) for prefix in EXTERNAL_PREFIXES)


def _disk_status(mount: str, device: str) -> Optional[DiskStatus]:
    try:
        usage = shutil.disk_usage(mount)
    except OSError:
        return None
    return DiskStatus(
        mount=mount,
        device=device,
        total_bytes=usage.total,
        used_bytes=usage.used,
        free_bytes=usage.free,
        external=is_external_mount(mount),
    )


def parse_proc_mounts(text: str) -> list[tuple[str, str]]:
    """Return (device, mount) pairs for real filesystems in /proc/mounts."""
    mounts = []
    seen = set()
    for line in text.splitlines():
        fields = line.split()
        if len(fields) < 3:
            continue
        device, mount, fstype = fields[0], fields[1], fields[2]
        # /proc/mounts escapes spaces as \040
        mount = mount.replace("\\040", " ")
        if fstype not in _REAL_FS_TYPES or device in seen:
            continue
        seen.add(device)
        mounts.append((device, mount))
    return mounts


def parse_df_output(text: str) -> list[tuple[str, str]]:
    """Return (device, mount) pairs from `df -kP` output."""
    mounts = []
    for line in text.strip().splitlines()[1:]:
        fields = line.split()
        if len(fields) < 6 or not fields[0].startswith("/dev/"):
            continue
        mounts.append((fields[0], " ".join(fields[5:])))
    return mounts


def collect_disks() -> list[DiskStatus]:
    """Mounted filesystems with usage."""
    if platform.system() == "Linux":
        try:
            pairs = parse_proc_mounts(Path("/proc/mounts").read_text())
        except OSError:
            pairs = []
    else:
        output = _run(["df", "-kP"], timeout=5)
        pairs = parse_df_output(output) if output else []

    disks = []
    for device, mount in pairs:
        disk = _disk_status(mount, device)
        if disk is not None:
            disks.append(disk)

    # Containers and odd setups may expose no real filesystem
    if not disks:
        root = _disk_status("/", "")
        if root is not None:
            disks.append(root)
    return disks


_PMSET_RE = re.compile(r"(\d+)%;\s*(\w+)")


def parse_pmset_output(text: str) -> Optional[BatteryStatus]:
    """Parse `pmset -g batt`."""
    match = _PMSET_RE.search(text)
    if not match:
        return None
    state = match.group(2).lower()
    return BatteryStatus(percent=float(match.group(1)), charging=state in ("charging", "charged"))


def collect_battery() -> Optional[BatteryStatus]:
    """Battery charge, None on machines without one."""
    system = platform.system()
    if system == "Darwin":
        output = _run(["pmset", "-g", "batt"])
        return parse_pmset_output(output) if output else None
    if system != "Linux":
        return None

    for supply in sorted(glob.glob("/sys/class/power_supply/BAT*")):
        try:
            capacity = Path(supply, "capacity").read_text().strip()
            state = Path(supply, "status").read_text().strip().lower()
        except OSError:
            continue
        try:
            percent = float(capacity)
        except ValueError:
            continue
        return BatteryStatus(percent=percent, charging=state in ("charging", "full"))
    return None


def split_disks(disks: list[DiskStatus]) -> tuple[list[DiskStatus], list[DiskStatus]]:
    """Split disks into (internal, external), keeping order."""
    internal = [d for d in disks if not d.external]
    external = [d for d in disks if d.external]
    return internal, external


def disk_label(prefix: str, index: int, total: int) -> str:
    """Label a disk, numbering it (1-based) only when there are several."""
    if total <= 1:
        return prefix
    return f"{prefix}{index + 1}"


def collect_status(top: int = 5) -> SystemStatus:
    """Collect a full dashboard snapshot."""
    try:
        load = os.getloadavg()
    except (OSError, AttributeError):
        load = (0.0, 0.0, 0.0)

    return SystemStatus(
        hostname=platform.node(),
        cpu_count=os.cpu_count() or 0,
        load_average=load,
        disks=collect_disks(),
        processes=collect_top_processes(top),
        battery=collect_battery(),
    )
