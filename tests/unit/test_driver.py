"""Tests for FrameLoop, frame records, and trace export."""

from __future__ import annotations

import random
from dataclasses import replace

import pandas as pd

from tokenbucketsim.driver import FrameLoop, FrameRecord, SimulationTrace, TraceSummary, diff_states
from tokenbucketsim.engine import add_request, create_initial_state, update_state
from tokenbucketsim.generator import BurstyRequestGenerator
from tokenbucketsim.model import Bucket, ItemKind


def empty_bucket(state):
    return replace(state, bucket=Bucket(level=0, max_level=state.bucket.max_level))


class TestFrameLoop:

    def test_step_advances_state(self):
        loop = FrameLoop(create_initial_state(10, 5, 60))
        record = loop.step()

        assert loop.state.frame_count == 1
        assert record.frame == 1
        assert record.bucket_level == 10
        assert record.max_level == 10

    def test_manual_request_processed(self):
        loop = FrameLoop(create_initial_state(10, 0, 60))
        loop.add_request()

        trace = loop.run(120)
        summary = trace.summary()

        assert summary.requests_processed == 1
        assert summary.requests_dropped == 0
        assert summary.tokens_absorbed == 0
        last = trace.records[-1]
        assert last.requests_processed == 1
        assert last.processed_on_screen == 1
        assert last.bucket_level == 9

    def test_manual_request_dropped(self):
        loop = FrameLoop(empty_bucket(create_initial_state(10, 0, 60)))
        loop.add_request()

        summary = loop.run(120).summary()

        assert summary.requests_dropped == 1
        assert summary.drop_rate == 1.0

    def test_token_absorbed(self):
        loop = FrameLoop(empty_bucket(create_initial_state(10, 5, 60)))
        summary = loop.run(133).summary()

        assert summary.tokens_absorbed == 1
        assert summary.tokens_wasted == 0
        assert loop.state.bucket.level == 1

    def test_token_wasted_when_full(self):
        loop = FrameLoop(create_initial_state(10, 5, 60))
        summary = loop.run(140).summary()

        assert summary.tokens_absorbed == 0
        assert summary.tokens_wasted == 1

    def test_set_bucket_size(self):
        loop = FrameLoop(create_initial_state(10, 5, 60))
        state = loop.set_bucket_size(3)
        assert state.bucket == Bucket(level=3, max_level=3)
        assert loop.state is state

    def test_bursty_manual_request_uses_rng(self):
        loop = FrameLoop(create_initial_state(10, 0, 60), rng=random.Random(4))
        state = loop.add_request(burstiness=2.0)
        assert 0 <= state.items[0].age < 120

    def test_generator_injects_requests(self):
        gen = BurstyRequestGenerator(mean_rps=2, burstiness=0)
        loop = FrameLoop(create_initial_state(10, 0, 30), generator=gen)

        summary = loop.run(300).summary()

        # One arrival on the first tick, then one every 15 frames
        created = loop.state.next_id - 1
        assert 20 <= created <= 21
        assert summary.requests_processed == 10
        assert summary.requests_dropped >= 1

    def test_counts_match_state(self):
        loop = FrameLoop(create_initial_state(5, 4, 30, 3, 1.0), rng=random.Random(2))
        trace = loop.run(400)

        last = trace.records[-1]
        state = loop.state
        assert last.tokens_in_flight == len(state.items_of(ItemKind.TOKEN))
        assert last.requests_in_flight == len(state.items_of(ItemKind.REQUEST))
        assert last.processed_on_screen == len(state.items_of(ItemKind.PROCESSED))
        assert last.dropped_on_screen == len(state.items_of(ItemKind.DROPPED))
        assert all(r.tokens_wasted >= 0 and r.tokens_absorbed >= 0 for r in trace.records)


class TestDiffStates:

    def test_request_resolved_in_creation_frame(self):
        # A bursty request created one frame from the bucket resolves immediately
        before = create_initial_state(10, 0, 60)
        after = update_state(add_request(before, 2.0, _Fixed(0.999)))

        record = diff_states(before, after)

        assert record.requests_processed == 1
        assert record.tokens_absorbed == 0


class _Fixed:
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


class TestSimulationTrace:

    def test_dataframe_shape(self):
        trace = FrameLoop(create_initial_state(10, 5, 60)).run(50)
        df = trace.to_dataframe()

        assert isinstance(df, pd.DataFrame)
        assert len(df) == len(trace) == 50
        assert df.index.name == "frame"
        assert "bucket_level" in df.columns
        assert "tokens_wasted" in df.columns

    def test_csv_export(self, tmp_path):
        trace = FrameLoop(create_initial_state(10, 5, 60)).run(20)
        path = trace.to_csv(tmp_path / "nested" / "trace.csv")

        assert path.exists()
        loaded = pd.read_csv(path, index_col="frame")
        assert len(loaded) == 20

    def test_empty_summary(self):
        summary = SimulationTrace().summary()
        assert summary == TraceSummary(0, 0, 0, 0, 0, 0.0)
        assert summary.drop_rate == 0.0

    def test_drop_rate(self):
        summary = TraceSummary(
            frames=10,
            requests_processed=3,
            requests_dropped=1,
            tokens_absorbed=0,
            tokens_wasted=0,
            mean_bucket_level=1.0,
        )
        assert summary.drop_rate == 0.25

    def test_summary_mean_level(self):
        records = [
            FrameRecord(frame=1, bucket_level=2, max_level=4, tokens_in_flight=0,
                        requests_in_flight=0, processed_on_screen=0, dropped_on_screen=0),
            FrameRecord(frame=2, bucket_level=4, max_level=4, tokens_in_flight=0,
                        requests_in_flight=0, processed_on_screen=0, dropped_on_screen=0),
        ]
        assert SimulationTrace(records).summary().mean_bucket_level == 3.0
