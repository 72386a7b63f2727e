"""Tests for orientation mapping and image re-orientation."""

from __future__ import annotations

import numpy as np
import pytest

from live_detect.camera.orientation import (
    OrientationTracker,
    image_orientation_for,
    native_point,
    native_rect,
    orient_image,
)
from live_detect.core.types import DeviceOrientation, ImageOrientation, Rect


class TestImageOrientationFor:
    """Tests for the fixed device -> image orientation table."""

    @pytest.mark.parametrize(
        ("device", "expected"),
        [
            (DeviceOrientation.PORTRAIT, ImageOrientation.UP),
            (DeviceOrientation.PORTRAIT_UPSIDE_DOWN, ImageOrientation.LEFT),
            (DeviceOrientation.LANDSCAPE_LEFT, ImageOrientation.UP_MIRRORED),
            (DeviceOrientation.LANDSCAPE_RIGHT, ImageOrientation.DOWN),
        ],
    )
    def test_mapping_table(self, device: DeviceOrientation, expected: ImageOrientation) -> None:
        assert image_orientation_for(device) is expected

    @pytest.mark.parametrize(
        "device",
        [DeviceOrientation.UNKNOWN, DeviceOrientation.FACE_UP, DeviceOrientation.FACE_DOWN],
    )
    def test_unmapped_orientations_default_to_up(self, device: DeviceOrientation) -> None:
        assert image_orientation_for(device) is ImageOrientation.UP

    def test_rotation_to_landscape_left_mirrors(self) -> None:
        """Portrait -> landscape left changes UP to UP_MIRRORED."""
        tracker = OrientationTracker(DeviceOrientation.PORTRAIT)
        assert image_orientation_for(tracker.orientation) is ImageOrientation.UP

        tracker.set(DeviceOrientation.LANDSCAPE_LEFT)
        assert image_orientation_for(tracker.orientation) is ImageOrientation.UP_MIRRORED


class TestOrientationTracker:
    """Tests for simulated device rotation."""

    def test_rotate_clockwise_cycles(self) -> None:
        tracker = OrientationTracker()
        seen = [tracker.rotate() for _ in range(4)]
        assert seen[-1] is DeviceOrientation.PORTRAIT
        assert len(set(seen)) == 4

    def test_rotate_counterclockwise_from_portrait(self) -> None:
        tracker = OrientationTracker()
        assert tracker.rotate(clockwise=False) is DeviceOrientation.LANDSCAPE_LEFT

    def test_rotate_from_face_up_restarts_sequence(self) -> None:
        tracker = OrientationTracker(DeviceOrientation.FACE_UP)
        assert tracker.rotate() is DeviceOrientation.LANDSCAPE_RIGHT


class TestOrientImage:
    """Tests for EXIF-style orientation with OpenCV."""

    @pytest.fixture
    def image(self) -> np.ndarray:
        # 2 rows x 3 columns, single channel values 0..5 replicated to 3 channels
        base = np.arange(6, dtype=np.uint8).reshape(2, 3)
        return np.stack([base] * 3, axis=-1)

    def test_up_is_identity(self, image: np.ndarray) -> None:
        assert orient_image(image, ImageOrientation.UP) is image

    def test_up_mirrored_flips_horizontally(self, image: np.ndarray) -> None:
        assert np.array_equal(orient_image(image, ImageOrientation.UP_MIRRORED), image[:, ::-1])

    def test_down_rotates_half_turn(self, image: np.ndarray) -> None:
        assert np.array_equal(orient_image(image, ImageOrientation.DOWN), image[::-1, ::-1])

    def test_right_rotates_clockwise(self, image: np.ndarray) -> None:
        result = orient_image(image, ImageOrientation.RIGHT)
        assert result.shape[:2] == (3, 2)
        assert np.array_equal(result, np.rot90(image, k=-1))

    def test_left_rotates_counterclockwise(self, image: np.ndarray) -> None:
        result = orient_image(image, ImageOrientation.LEFT)
        assert np.array_equal(result, np.rot90(image, k=1))

    def test_left_mirrored_transposes(self, image: np.ndarray) -> None:
        result = orient_image(image, ImageOrientation.LEFT_MIRRORED)
        assert np.array_equal(result, image.transpose(1, 0, 2))


class TestNativeRect:
    """Tests for mapping oriented boxes back to the native buffer."""

    @pytest.mark.parametrize("orientation", list(ImageOrientation))
    def test_inverts_orient_image(self, orientation: ImageOrientation) -> None:
        # 8x6 native buffer with a single marked pixel at column 1, row 4
        native = np.zeros((6, 8), dtype=np.uint8)
        native[4, 1] = 255
        oriented = orient_image(native, orientation)
        height, width = oriented.shape[:2]
        row, col = (int(i) for i in np.argwhere(oriented)[0])

        box = native_rect(Rect(col / width, row / height, 1 / width, 1 / height), orientation)

        assert box.x == pytest.approx(1 / 8)
        assert box.y == pytest.approx(4 / 6)
        assert box.width == pytest.approx(1 / 8)
        assert box.height == pytest.approx(1 / 6)

    def test_up_returns_same_rect(self) -> None:
        rect = Rect(0.1, 0.2, 0.3, 0.4)
        assert native_rect(rect, ImageOrientation.UP) is rect

    def test_landscape_left_box(self) -> None:
        """Right quarter of a mirrored image is the left quarter of the native one."""
        box = native_rect(Rect(0.75, 0.2, 0.25, 0.2), ImageOrientation.UP_MIRRORED)
        assert box.x == pytest.approx(0.0)
        assert box.y == pytest.approx(0.2)
        assert box.width == pytest.approx(0.25)

    @pytest.mark.parametrize("orientation", list(ImageOrientation))
    def test_points_stay_in_unit_square(self, orientation: ImageOrientation) -> None:
        for u, v in ((0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (1.0, 1.0)):
            x, y = native_point(u, v, orientation)
            assert 0.0 <= x <= 1.0
            assert 0.0 <= y <= 1.0
