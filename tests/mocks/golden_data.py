"""
Golden Test Data - Realistic proc and sysfs contents.

/proc/meminfo layouts as the kernel prints them, in kernel field order,
plus variants with a missing field or a garbled value.
"""

# =============================================================================
# /proc/meminfo
# =============================================================================

MEMINFO = """\
MemTotal:        2000000 kB
MemFree:          500000 kB
MemAvailable:     900000 kB
Buffers:           20000 kB
Cached:           300000 kB
SwapCached:         1000 kB
Active:           600000 kB
Inactive:         400000 kB
Active(anon):     400000 kB
Inactive(anon):   100000 kB
Active(file):     200000 kB
Inactive(file):   300000 kB
Unevictable:        4096 kB
Mlocked:            4096 kB
SwapTotal:       1000000 kB
SwapFree:         750000 kB
Dirty:               512 kB
Writeback:             0 kB
AnonPages:        480000 kB
Mapped:           120000 kB
Shmem:             30000 kB
KReclaimable:      40000 kB
Slab:              80000 kB
SReclaimable:      40000 kB
SUnreclaim:        40000 kB
KernelStack:        6000 kB
PageTables:        12000 kB
"""

# Swap disabled.
MEMINFO_NO_SWAP = MEMINFO.replace(
    "SwapTotal:       1000000 kB", "SwapTotal:             0 kB"
).replace(
    "SwapFree:         750000 kB", "SwapFree:              0 kB"
)

# Shmem never appears, so Shmem and Slab cannot be matched.
MEMINFO_MISSING_SHMEM = "\n".join(
    line for line in MEMINFO.splitlines() if not line.startswith("Shmem:")
) + "\n"

MEMINFO_BAD_VALUE = MEMINFO.replace("MemFree:          500000 kB", "MemFree:          lots kB")

MEMINFO_ZERO_TOTAL = MEMINFO.replace("MemTotal:        2000000 kB", "MemTotal:              0 kB")

# Fields swapped relative to the expected order: MemFree before MemTotal.
MEMINFO_OUT_OF_ORDER = """\
MemFree:          500000 kB
MemTotal:        2000000 kB
Active(anon):     400000 kB
Inactive(anon):   100000 kB
"""

# =============================================================================
# /proc/stat
# =============================================================================

PROC_STAT = """\
cpu  1000 200 300 50000 100 0 10 0 0 0
cpu0 500 100 150 25000 50 0 5 0 0 0
cpu1 500 100 150 25000 50 0 5 0 0 0
ctxt 123456
btime 1700000000
"""

# =============================================================================
# /etc/os-release
# =============================================================================

OS_RELEASE = """\
NAME="Example OS"
ID=example
VERSION_ID="7.1.0"
# comment line
PRETTY_NAME='Example OS 7.1'
"""

MB = 1 << 20
