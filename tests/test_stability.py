import asyncio
from pathlib import Path

from snap_sort.stability import CandidateFile, StabilityProbe, sample_file


class FakeSampler:
    def __init__(self, samples):
        self._samples = list(samples)
        self.calls = 0

    def __call__(self, path):
        self.calls += 1
        return self._samples.pop(0)


async def _no_sleep(seconds):
    return None


def _sample(size, mtime=1, readable=True):
    return CandidateFile(Path("/d/shot.png"), size, mtime, readable)


def test_file_growing_on_every_poll_is_not_stable():
    sampler = FakeSampler([_sample(size) for size in range(1, 6)])
    probe = StabilityProbe(max_attempts=5, sampler=sampler, sleep=_no_sleep)

    assert asyncio.run(probe.is_stable(Path("/d/shot.png"))) is False
    assert sampler.calls == 5


def test_first_matching_pair_returns_without_waiting_out_attempts():
    sampler = FakeSampler([_sample(10), _sample(20), _sample(20), _sample(20), _sample(20)])
    probe = StabilityProbe(max_attempts=5, sampler=sampler, sleep=_no_sleep)

    assert asyncio.run(probe.is_stable(Path("/d/shot.png"))) is True
    assert sampler.calls == 3


def test_changed_modification_time_is_not_a_match():
    sampler = FakeSampler([_sample(10, mtime=1), _sample(10, mtime=2), _sample(10, mtime=3)])
    probe = StabilityProbe(max_attempts=3, sampler=sampler, sleep=_no_sleep)

    assert asyncio.run(probe.is_stable(Path("/d/shot.png"))) is False


def test_unreadable_file_is_not_stable():
    sampler = FakeSampler([_sample(10, readable=False)] * 3)
    probe = StabilityProbe(max_attempts=3, sampler=sampler, sleep=_no_sleep)

    assert asyncio.run(probe.is_stable(Path("/d/shot.png"))) is False


def test_vanished_file_fails_immediately():
    sampler = FakeSampler([_sample(10), None, _sample(10)])
    probe = StabilityProbe(max_attempts=5, sampler=sampler, sleep=_no_sleep)

    assert asyncio.run(probe.is_stable(Path("/d/shot.png"))) is False
    assert sampler.calls == 2


def test_sleeps_between_attempts_only():
    delays = []

    async def record_sleep(seconds):
        delays.append(seconds)

    sampler = FakeSampler([_sample(size) for size in range(3)])
    probe = StabilityProbe(max_attempts=3, interval=0.25, sampler=sampler, sleep=record_sleep)

    asyncio.run(probe.is_stable(Path("/d/shot.png")))

    assert delays == [0.25, 0.25]


def test_real_file_settles(tmp_path):
    shot = tmp_path / "shot.png"
    shot.write_bytes(b"x" * 100)
    probe = StabilityProbe(interval=0.01)

    assert asyncio.run(probe.is_stable(shot)) is True


def test_sample_file_rejects_directories(tmp_path):
    assert sample_file(tmp_path) is None
    assert sample_file(tmp_path / "missing.png") is None
