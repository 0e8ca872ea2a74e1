"""
Zram - Compressed swap statistics from a zram block device's sysfs directory.

Reads compr_data_size and orig_data_size (bytes) and zero_pages (pages).
All three must read; otherwise nothing is reported for this tick.
"""

import logging
from pathlib import Path
from typing import Union

from ..protocol.errors import SourceError
from ..protocol.sample import SampleSink
from ..runner.scheduler import TickResult
from .sources import read_int


logger = logging.getLogger(__name__)

COMPR_DATA_SIZE_NAME = "compr_data_size"
ORIG_DATA_SIZE_NAME = "orig_data_size"
ZERO_PAGES_NAME = "zero_pages"

PAGE_SIZE = 4096


class ZramSampler:
    """Reports zram size, savings, compression ratio and zero-page share."""

    def __init__(
        self,
        sink: SampleSink,
        zram_dir: Union[str, Path] = "/sys/block/zram0",
        interval: float = 300,
        page_size: int = PAGE_SIZE,
    ):
        self.sink = sink
        self.zram_dir = Path(zram_dir)
        self.interval = interval
        self.page_size = page_size

    def run(self) -> TickResult:
        """Scheduler handler."""
        try:
            self.report_zram()
        except SourceError as e:
            logger.warning("zram sample skipped: %s", e)
            return TickResult.failed(self.interval)
        return TickResult.ok(self.interval)

    def report_zram(self):
        compr_data_size = read_int(self.zram_dir / COMPR_DATA_SIZE_NAME)
        orig_data_size = read_int(self.zram_dir / ORIG_DATA_SIZE_NAME)
        zero_pages = read_int(self.zram_dir / ZERO_PAGES_NAME)

        # orig_data_size does not include zero-filled pages.
        zero_bytes = zero_pages * self.page_size
        orig_data_size += zero_bytes

        compr_data_size_mb = compr_data_size >> 20
        savings_mb = max(0, orig_data_size - compr_data_size) >> 20
        zero_ratio_percent = zero_bytes * 100 // orig_data_size if orig_data_size else 0

        # 100 MB or less has little impact.
        self.sink.emit_bucketed("Platform.ZramCompressedSize", compr_data_size_mb, 100, 4000, 50)
        self.sink.emit_bucketed("Platform.ZramSavings", savings_mb, 100, 4000, 50)
        # Ratio x100; the interesting range is 1 to 6. Skip when very little is compressed.
        if compr_data_size_mb >= 1:
            self.sink.emit_bucketed(
                "Platform.ZramCompressionRatioPercent",
                orig_data_size * 100 // compr_data_size,
                100, 600, 50,
            )
        # Zero pages of interest are between 1MB and 1GB worth, in pages.
        self.sink.emit_bucketed("Platform.ZramZeroPages", zero_pages, 256, 256 * 1024, 50)
        self.sink.emit_bucketed("Platform.ZramZeroRatioPercent", zero_ratio_percent, 1, 50, 50)
