"""
Tests for the batch transform engine.

Covers target-size arithmetic, both operating variants, per-file failure
isolation and cancellation.
"""

import threading
from pathlib import Path

import pytest
from PIL import Image

from dirscale import engine as engine_module
from dirscale.config import (
    EngineConfig,
    ScaleDirection,
    ScaleRequest,
    SizingMode,
)
from dirscale.engine import (
    BatchTransformEngine,
    OutcomeStatus,
    compute_target_size,
    output_subdirectory,
)
from dirscale.errors import OutputDirectoryError, TransformError
from dirscale.events import FANOUT_COMPLETE, FILE_FAILED
from dirscale.filters import FilterKind
from dirscale.inventory import walk_directory
from tests.test_fixtures import image_format, image_size, write_image

# Pillow can read XPM but has no XPM writer
XPM_ICON = b"""/* XPM */
static char *icon[] = {
"4 4 2 1",
"  c #000000",
". c #FFFFFF",
"....",
".  .",
".  .",
"....",
};
"""


class TestComputeTargetSize:
    """Test cases for compute_target_size."""

    def test_shrink_truncates(self):
        request = ScaleRequest(direction=ScaleDirection.DOWN, factor=3)

        assert compute_target_size((101, 50), request, SizingMode.RATIO) == (33, 16)

    def test_enlarge_multiplies(self):
        request = ScaleRequest(direction=ScaleDirection.UP, factor=3)

        assert compute_target_size((33, 16), request, SizingMode.RATIO) == (99, 48)

    def test_shrink_then_enlarge_is_lossy(self):
        down = ScaleRequest(direction=ScaleDirection.DOWN, factor=3)
        up = ScaleRequest(direction=ScaleDirection.UP, factor=3)

        shrunk = compute_target_size((101, 50), down, SizingMode.RATIO)
        restored = compute_target_size(shrunk, up, SizingMode.RATIO)

        assert restored == (99, 48)
        assert restored != (101, 50)

    def test_fixed_target_ignores_aspect_ratio(self):
        request = ScaleRequest(
            direction=ScaleDirection.DOWN, factor=7, target_size=200
        )

        assert compute_target_size((640, 480), request, SizingMode.FIXED_TARGET) == (
            200,
            200,
        )

    def test_fixed_target_requires_size(self):
        request = ScaleRequest(direction=ScaleDirection.DOWN)

        with pytest.raises(TransformError):
            compute_target_size((10, 10), request, SizingMode.FIXED_TARGET)

    def test_collapse_to_zero_is_an_error(self):
        request = ScaleRequest(direction=ScaleDirection.DOWN, factor=4)

        with pytest.raises(TransformError, match="no pixels"):
            compute_target_size((3, 100), request, SizingMode.RATIO)


def test_output_subdirectory_names(tmp_path):
    """Subdirectory names encode the target size or the ratio."""
    fixed = ScaleRequest(direction=ScaleDirection.DOWN, target_size=200)
    ratio = ScaleRequest(direction=ScaleDirection.UP, factor=2)

    assert (
        output_subdirectory(tmp_path, fixed, EngineConfig.fixed_target_variant())
        == tmp_path / "scaled-200"
    )
    assert (
        output_subdirectory(
            tmp_path, ratio, EngineConfig(output_mode="subdirectory")
        )
        == tmp_path / "scaled-up-2"
    )


class TestInPlaceRatio:
    """In-place ratio scaling keeps each file's own format."""

    def test_shrink_rewrites_every_image(
        self, image_dir, shrink_by_two, ratio_config, observer
    ):
        files = walk_directory(image_dir).files
        engine = BatchTransformEngine(ratio_config, observer=observer)

        result = engine.run(files, shrink_by_two)

        assert result.ok
        assert sorted(result.succeeded) == sorted(files)
        assert image_size(image_dir / "wide.png") == (20, 10)
        assert image_size(image_dir / "square.jpg") == (15, 15)
        assert image_size(image_dir / "palette.gif") == (12, 6)
        assert image_format(image_dir / "wide.png") == "PNG"
        assert image_format(image_dir / "square.jpg") == "JPEG"
        assert image_format(image_dir / "palette.gif") == "GIF"
        assert result.output_dir is None

    def test_enlarge_with_gaussian(self, tmp_path, ratio_config, observer):
        path = write_image(tmp_path / "tiny.png", (5, 3))
        request = ScaleRequest(
            direction=ScaleDirection.UP, factor=4, filter_kind=FilterKind.GAUSSIAN
        )

        result = BatchTransformEngine(ratio_config, observer=observer).run(
            [str(path)], request
        )

        assert result.ok
        assert image_size(path) == (20, 12)
        outcome = result.outcomes[0]
        assert outcome.native_size == (5, 3)
        assert outcome.target_size == (20, 12)
        assert outcome.source_format == "PNG"
        assert outcome.output_path == str(path)

    def test_failed_file_does_not_affect_others(
        self, image_dir, shrink_by_two, ratio_config, observer
    ):
        notes = image_dir / "notes.txt"
        notes.write_text("not an image")
        files = walk_directory(image_dir).files

        result = BatchTransformEngine(ratio_config, observer=observer).run(
            files, shrink_by_two
        )

        assert not result.ok
        assert [path for path, _ in result.failed] == [str(notes)]
        assert len(result.succeeded) == 3
        assert notes.read_text() == "not an image"
        assert image_size(image_dir / "wide.png") == (20, 10)

        failed_events = [e for e in observer.events if e.kind == FILE_FAILED]
        assert len(failed_events) == 1
        assert failed_events[0].details["path"] == str(notes)

    def test_collapsing_image_is_reported_as_failure(
        self, tmp_path, ratio_config, observer
    ):
        path = write_image(tmp_path / "dot.png", (1, 1))
        request = ScaleRequest(direction=ScaleDirection.DOWN, factor=2)

        result = BatchTransformEngine(ratio_config, observer=observer).run(
            [str(path)], request
        )

        (failed_path, reason), = result.failed
        assert failed_path == str(path)
        assert reason.startswith("TransformError")
        assert image_size(path) == (1, 1)

    def test_single_worker(self, image_dir, shrink_by_two, observer):
        config = EngineConfig.ratio_variant(max_workers=1)
        files = walk_directory(image_dir).files

        result = BatchTransformEngine(config, observer=observer).run(
            files, shrink_by_two
        )

        assert result.ok
        fanout = [e for e in observer.events if e.kind == FANOUT_COMPLETE]
        assert fanout[0].details["workers"] == 1
        assert fanout[0].details["succeeded"] == 3

    def test_read_only_format_fails_alone(self, tmp_path, ratio_config, observer):
        """A format Pillow reads but cannot write fails only its own file."""
        good = write_image(tmp_path / "ok.png", (8, 8))
        icon = tmp_path / "icon.xpm"
        icon.write_bytes(XPM_ICON)
        request = ScaleRequest(
            direction=ScaleDirection.DOWN, factor=2, filter_kind=FilterKind.NEAREST
        )

        result = BatchTransformEngine(ratio_config, observer=observer).run(
            [str(good), str(icon)], request
        )

        assert result.succeeded == [str(good)]
        assert [path for path, _ in result.failed] == [str(icon)]
        assert icon.read_bytes() == XPM_ICON
        assert image_size(good) == (4, 4)

    def test_cmyk_jpeg_stays_cmyk_in_place(self, tmp_path, ratio_config, observer):
        path = write_image(
            tmp_path / "print.jpg", (20, 20), "JPEG", mode="CMYK", color=(0, 50, 100, 0)
        )
        request = ScaleRequest(
            direction=ScaleDirection.DOWN, factor=2, filter_kind=FilterKind.NEAREST
        )

        result = BatchTransformEngine(ratio_config, observer=observer).run(
            [str(path)], request
        )

        assert result.ok
        with Image.open(path) as image:
            assert image.mode == "CMYK"
            assert image.size == (10, 10)


class TestEncode:
    """Test cases for writing resized images."""

    def test_unwritable_format_raises_transform_error(self, tmp_path):
        target = tmp_path / "out.xpm"

        with pytest.raises(TransformError, match="cannot encode XPM"):
            engine_module._encode(Image.new("P", (2, 2)), target, "XPM")

        assert not target.exists()

    @pytest.mark.parametrize("mode", ["CMYK", "YCbCr", "HSV"])
    def test_colour_spaces_written_as_rgb_png(self, tmp_path, mode):
        target = tmp_path / "out.png"

        engine_module._encode(Image.new(mode, (4, 4)), target, "PNG")

        with Image.open(target) as image:
            assert image.mode == "RGB"


class TestFixedTargetSubdirectory:
    """Fixed-target scaling writes PNG output into scaled-<size>."""

    def test_creates_subdirectory_and_leaves_sources(
        self, image_dir, fixed_target_config, observer
    ):
        request = ScaleRequest(
            direction=ScaleDirection.DOWN, factor=1, target_size=16
        )
        before = {p: Path(p).read_bytes() for p in walk_directory(image_dir).files}
        output_dir = output_subdirectory(image_dir, request, fixed_target_config)
        assert not output_dir.exists()

        result = BatchTransformEngine(fixed_target_config, observer=observer).run(
            list(before), request, output_dir=output_dir
        )

        assert result.ok
        assert result.output_dir == str(output_dir)
        assert output_dir.is_dir()
        for source, data in before.items():
            written = output_dir / Path(source).name
            assert image_size(written) == (16, 16)
            assert image_format(written) == "PNG"
            assert Path(source).read_bytes() == data

    def test_subdirectory_exists_before_first_write(
        self, image_dir, fixed_target_config, observer, monkeypatch
    ):
        request = ScaleRequest(direction=ScaleDirection.DOWN, target_size=200)
        output_dir = image_dir / "scaled-200"
        parents_seen = []
        original_encode = engine_module._encode

        def recording_encode(image, out_path, out_format):
            parents_seen.append(out_path.parent.is_dir())
            original_encode(image, out_path, out_format)

        monkeypatch.setattr(engine_module, "_encode", recording_encode)

        BatchTransformEngine(fixed_target_config, observer=observer).run(
            walk_directory(image_dir).files, request, output_dir=output_dir
        )

        assert parents_seen == [True, True, True]

    def test_cmyk_source_written_as_rgb_png(
        self, tmp_path, fixed_target_config, observer
    ):
        source = write_image(
            tmp_path / "print.jpg", (20, 20), "JPEG", mode="CMYK", color=(0, 50, 100, 0)
        )
        request = ScaleRequest(
            direction=ScaleDirection.DOWN,
            target_size=8,
            filter_kind=FilterKind.NEAREST,
        )
        output_dir = output_subdirectory(tmp_path, request, fixed_target_config)

        result = BatchTransformEngine(fixed_target_config, observer=observer).run(
            [str(source)], request, output_dir=output_dir
        )

        assert result.ok
        with Image.open(output_dir / "print.jpg") as image:
            assert image.format == "PNG"
            assert image.mode == "RGB"
            assert image.size == (8, 8)

    def test_existing_subdirectory_is_reused(
        self, image_dir, fixed_target_config, observer
    ):
        request = ScaleRequest(direction=ScaleDirection.DOWN, target_size=8)
        output_dir = image_dir / "scaled-8"
        output_dir.mkdir()

        result = BatchTransformEngine(fixed_target_config, observer=observer).run(
            walk_directory(image_dir).files, request, output_dir=output_dir
        )

        assert result.ok
        assert len(walk_directory(output_dir).files) == 3

    def test_unwritable_subdirectory_raises(
        self, image_dir, fixed_target_config, observer
    ):
        request = ScaleRequest(direction=ScaleDirection.DOWN, target_size=8)
        blocker = image_dir / "scaled-8"
        blocker.write_bytes(b"occupied")

        with pytest.raises(OutputDirectoryError):
            BatchTransformEngine(fixed_target_config, observer=observer).run(
                [str(image_dir / "wide.png")], request, output_dir=blocker
            )

    def test_subdirectory_mode_requires_output_dir(
        self, image_dir, fixed_target_config, observer
    ):
        request = ScaleRequest(direction=ScaleDirection.DOWN, target_size=8)

        with pytest.raises(ValueError, match="output_dir"):
            BatchTransformEngine(fixed_target_config, observer=observer).run(
                [str(image_dir / "wide.png")], request
            )


class TestCancellation:
    """Test cases for the cancellation signal."""

    def test_cancelled_before_start_touches_nothing(
        self, image_dir, shrink_by_two, ratio_config, observer
    ):
        files = walk_directory(image_dir).files
        before = {p: Path(p).read_bytes() for p in files}
        cancel = threading.Event()
        cancel.set()

        result = BatchTransformEngine(ratio_config, observer=observer).run(
            files, shrink_by_two, cancel_event=cancel
        )

        assert not result.ok
        assert sorted(result.cancelled) == sorted(files)
        assert all(o.status is OutcomeStatus.CANCELLED for o in result.outcomes)
        for path, data in before.items():
            assert Path(path).read_bytes() == data


def test_empty_work_list(ratio_config, shrink_by_two, observer):
    """An empty work list completes immediately."""
    result = BatchTransformEngine(ratio_config, observer=observer).run(
        [], shrink_by_two
    )

    assert result.ok
    assert result.outcomes == []
    assert observer.kinds() == [FANOUT_COMPLETE]
