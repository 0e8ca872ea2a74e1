"""
MockSink - Records samples instead of shipping them.
"""

from typing import List, Optional, Union

from metricsd.protocol.sample import BucketedSample, LinearSample


Sample = Union[BucketedSample, LinearSample]


class RecordingSink:
    """Sample sink that keeps everything it receives, in order."""

    def __init__(self):
        self.samples: List[Sample] = []

    def emit_bucketed(self, name: str, value: int, min: int, max: int, bucket_count: int) -> None:
        self.samples.append(BucketedSample(name, value, min, max, bucket_count))

    def emit_linear(self, name: str, value: int, max_value: int) -> None:
        self.samples.append(LinearSample(name, value, max_value))

    @property
    def names(self) -> List[str]:
        return [s.name for s in self.samples]

    def get(self, name: str) -> Optional[Sample]:
        """Last sample emitted under `name`."""
        for sample in reversed(self.samples):
            if sample.name == name:
                return sample
        return None

    def value(self, name: str) -> int:
        sample = self.get(name)
        assert sample is not None, f"no sample named {name}; got {self.names}"
        return sample.value

    def clear(self):
        self.samples = []
