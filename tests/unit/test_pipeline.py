"""Unit tests for EncodePipeline."""

import asyncio

import pytest

from mcp_server_videotrim.exceptions import EncodeFailure, NotFoundError, ValidationError
from mcp_server_videotrim.pipeline import EncodePipeline
from mcp_server_videotrim.segments import Segment
from mcp_server_videotrim.storage_types import FileCategory
from tests.utils.fake_encoder import FakeEncoder


def upload(tracker, session_id="s1", name="src.mp4", display="holiday.mov"):
    tracker.track(name, FileCategory.SOURCE, session_id)
    tracker.path_for(name, FileCategory.SOURCE).write_bytes(b"video")
    tracker.set_display_name(session_id, display)
    return name


def tracked(tracker, category):
    return sorted(f.filename for f in tracker.list_files() if f.category == category)


class TestEncodePipeline:
    def test_two_segments_cut_then_concat_then_token(self, tracker, tokens):
        encoder = FakeEncoder()
        pipeline = EncodePipeline(tracker, tokens, encoder)
        src = upload(tracker)

        token = asyncio.run(
            pipeline.run(src, [Segment(0, 2), Segment(5, 7)], "s1")
        )

        assert encoder.stages == ["trim", "trim", "concat"]
        assert [c[1] for c in encoder.calls[:2]] == [0, 1]
        assert tokens.lookup(token.token) == token
        assert token.display_name == "holiday-edited.mp4"
        assert token.filename.startswith("processed-")
        result = tracker.path_for(token.filename, FileCategory.RESULT)
        assert result.read_bytes() == b"joined-video"
        assert tracked(tracker, FileCategory.RESULT) == [token.filename]

    def test_intermediates_and_manifest_removed(self, tracker, tokens, settings):
        pipeline = EncodePipeline(tracker, tokens, FakeEncoder())
        src = upload(tracker)
        asyncio.run(pipeline.run(src, [Segment(0, 1), Segment(2, 3)], "s1"))
        assert tracked(tracker, FileCategory.INTERMEDIATE) == []
        assert list(settings.directory_for(FileCategory.INTERMEDIATE).iterdir()) == []

    def test_manifest_keeps_segment_order(self, tracker, tokens):
        encoder = FakeEncoder()
        pipeline = EncodePipeline(tracker, tokens, encoder)
        src = upload(tracker)
        asyncio.run(
            pipeline.run(src, [Segment(8, 9), Segment(0, 1), Segment(4, 5)], "s1")
        )
        lines = encoder.manifests[0].strip().splitlines()
        assert len(lines) == 3
        for i, line in enumerate(lines):
            assert line.startswith("file '") and line.endswith(f"-{i}.mp4'")
        trimmed = [c[2] for c in encoder.calls if c[0] == "trim"]
        assert trimmed == [Segment(8, 9), Segment(0, 1), Segment(4, 5)]

    def test_failure_on_second_of_three_aborts_before_concat(self, tracker, tokens):
        encoder = FakeEncoder(fail_on_trim=1)
        pipeline = EncodePipeline(tracker, tokens, encoder)
        src = upload(tracker)

        with pytest.raises(EncodeFailure) as excinfo:
            asyncio.run(
                pipeline.run(src, [Segment(0, 1), Segment(2, 3), Segment(4, 5)], "s1")
            )

        assert excinfo.value.stage == "trim"
        assert excinfo.value.index == 1
        assert "concat" not in encoder.stages
        assert len(tokens) == 0
        intermediates = tracked(tracker, FileCategory.INTERMEDIATE)
        first = encoder.calls[0][3]
        failed = encoder.calls[1][3]
        # First cut stays tracked for the collector, the failed step cleaned itself up
        assert first.name in intermediates
        assert first.exists()
        assert failed.name not in intermediates
        assert not failed.exists()

    def test_concat_failure_removes_partial_result(self, tracker, tokens):
        encoder = FakeEncoder(fail_concat=True)
        pipeline = EncodePipeline(tracker, tokens, encoder)
        src = upload(tracker)
        with pytest.raises(EncodeFailure):
            asyncio.run(pipeline.run(src, [Segment(0, 1)], "s1"))
        assert tracked(tracker, FileCategory.RESULT) == []
        # Cut and manifest are left for the garbage collector
        assert len(tracked(tracker, FileCategory.INTERMEDIATE)) == 2

    def test_intermediates_registered_before_encoding(self, tracker, tokens):
        seen = []

        class SpyEncoder(FakeEncoder):
            async def trim(self, source, destination, segment, index):
                seen.append(tracked(tracker, FileCategory.INTERMEDIATE))
                await super().trim(source, destination, segment, index)

        pipeline = EncodePipeline(tracker, tokens, SpyEncoder())
        src = upload(tracker)
        asyncio.run(pipeline.run(src, [Segment(0, 1), Segment(2, 3)], "s1"))
        assert len(seen[0]) == 2

    def test_missing_source(self, tracker, tokens):
        pipeline = EncodePipeline(tracker, tokens, FakeEncoder())
        with pytest.raises(NotFoundError):
            asyncio.run(pipeline.run("absent.mp4", [Segment(0, 1)], "s1"))

    def test_empty_segments(self, tracker, tokens):
        pipeline = EncodePipeline(tracker, tokens, FakeEncoder())
        src = upload(tracker)
        with pytest.raises(ValidationError):
            asyncio.run(pipeline.run(src, [], "s1"))

    def test_default_display_name_without_upload_name(self, tracker, tokens, settings):
        pipeline = EncodePipeline(tracker, tokens, FakeEncoder())
        tracker.track("raw.mp4", FileCategory.SOURCE, "s2")
        tracker.path_for("raw.mp4", FileCategory.SOURCE).write_bytes(b"v")
        token = asyncio.run(pipeline.run("raw.mp4", [Segment(0, 1)], "s2"))
        assert token.display_name == settings.default_display_name

    def test_concurrent_runs_do_not_collide(self, tracker, tokens):
        encoder = FakeEncoder()
        pipeline = EncodePipeline(tracker, tokens, encoder)
        src = upload(tracker)

        async def both():
            return await asyncio.gather(
                pipeline.run(src, [Segment(0, 1)], "s1"),
                pipeline.run(src, [Segment(0, 1)], "s1"),
            )

        first, second = asyncio.run(both())
        assert first.filename != second.filename
        destinations = [c[3] for c in encoder.calls]
        assert len(set(destinations)) == len(destinations)

    def test_inputs_held_in_use_while_encoding(self, tracker, tokens):
        seen = {}

        def in_use(name):
            return tracker.get_file(name).in_use

        class SpyEncoder(FakeEncoder):
            async def trim(self, source, destination, segment, index):
                seen[f"trim{index}"] = (in_use(source.name), in_use(destination.name))
                await super().trim(source, destination, segment, index)

            async def concat(self, manifest, destination):
                seen["concat"] = (in_use(manifest.name), in_use(destination.name))
                await super().concat(manifest, destination)

        pipeline = EncodePipeline(tracker, tokens, SpyEncoder())
        src = upload(tracker)
        token = asyncio.run(pipeline.run(src, [Segment(0, 1), Segment(2, 3)], "s1"))

        assert seen == {
            "trim0": (True, True),
            "trim1": (True, True),
            "concat": (True, True),
        }
        assert in_use(src) is False
        assert in_use(token.filename) is False

    def test_holds_released_after_failure(self, tracker, tokens):
        encoder = FakeEncoder(fail_on_trim=1)
        pipeline = EncodePipeline(tracker, tokens, encoder)
        src = upload(tracker)
        with pytest.raises(EncodeFailure):
            asyncio.run(pipeline.run(src, [Segment(0, 1), Segment(2, 3)], "s1"))
        assert not any(f.in_use for f in tracker.list_files())

    def test_session_touched_before_each_stage(self, tracker, tokens, clock):
        activity = []

        class SlowEncoder(FakeEncoder):
            async def trim(self, source, destination, segment, index):
                activity.append(tracker.get_session("s1").last_activity)
                clock.advance(100)
                await super().trim(source, destination, segment, index)

        pipeline = EncodePipeline(tracker, tokens, SlowEncoder())
        src = upload(tracker)
        start = clock()
        asyncio.run(pipeline.run(src, [Segment(0, 1), Segment(2, 3)], "s1"))
        assert activity == [start, start + 100]
        assert tracker.get_session("s1").last_activity == clock()

    def test_display_name_kept_when_session_expires_mid_run(self, tracker, tokens):
        class ExpiringEncoder(FakeEncoder):
            async def trim(self, source, destination, segment, index):
                tracker.cleanup_session("s1")
                await super().trim(source, destination, segment, index)

        pipeline = EncodePipeline(tracker, tokens, ExpiringEncoder())
        src = upload(tracker)
        token = asyncio.run(pipeline.run(src, [Segment(0, 1)], "s1"))
        assert token.display_name == "holiday-edited.mp4"
        assert tracker.path_for(src, FileCategory.SOURCE).exists()
