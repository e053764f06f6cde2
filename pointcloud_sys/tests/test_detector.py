# tests/test_detector.py
import pytest

from pointcloud_sys.app.core.anomaly import (
    DegenerateFitError,
    DetectionError,
    InsufficientDataError,
    annotate_detection,
    detect,
    fit_line,
)
from pointcloud_sys.app.models.annotation import Point3, Polyline, Sphere


@pytest.mark.parametrize("m0,b0", [(2.0, 1.0), (-0.5, 3.25), (0.0, -4.0)])
def test_collinear_points_have_no_outliers(m0, b0):
    pts = [Point3(x, m0 * x + b0, 0.1 * x) for x in (0.0, 1.0, 2.5, 4.0, 7.0)]
    result = detect(pts, threshold=0.01)

    assert result.outliers == ()
    assert result.inliers == tuple(pts)
    assert result.fit.m == pytest.approx(m0, abs=1e-9)
    assert result.fit.b == pytest.approx(b0, abs=1e-9)


def test_single_displaced_point_is_the_only_outlier(bump_points):
    result = detect([Point3(*p) for p in bump_points], threshold=0.5)

    assert result.outliers == (Point3(5.0, 12.0, 0.0),)
    assert len(result.inliers) == 10
    # 中间点 dx = 0，斜率不受影响
    assert result.fit.m == pytest.approx(2.0)


def test_detect_is_deterministic(bump_points):
    a = detect(bump_points, threshold=0.5)
    b = detect(bump_points, threshold=0.5)
    assert a == b


def test_distance_equal_to_threshold_is_inlier():
    # 拟合为 y = 1，偏差分别为 1, 2, 1
    pts = [Point3(0, 0, 0), Point3(1, 3, 0), Point3(2, 0, 0)]
    result = detect(pts, threshold=1.0)

    assert result.fit.m == 0.0
    assert result.fit.b == 1.0
    assert result.outliers == (Point3(1, 3, 0),)
    assert result.inliers == (Point3(0, 0, 0), Point3(2, 0, 0))


def test_partitions_keep_input_order():
    pts = [Point3(x, float(x), 0.0) for x in range(11)]
    pts[3] = Point3(3, 5.0, 0.0)
    pts[7] = Point3(7, 9.0, 0.0)

    result = detect(pts, threshold=0.5)

    assert result.outliers == (pts[3], pts[7])
    assert result.inliers == tuple(p for i, p in enumerate(pts) if i not in (3, 7))


def test_three_point_ols_flags_every_point():
    # 最小二乘会被第三个点拉偏：三个点的偏差都是 4/3 或 8/3
    pts = [Point3(0, 0, 0), Point3(1, 1, 0), Point3(2, 10, 0)]
    result = detect(pts, threshold=0.5)

    assert result.fit.m == pytest.approx(5.0)
    assert result.fit.b == pytest.approx(-4 / 3)
    assert result.outliers == tuple(pts)


def test_z_is_ignored():
    flat = [Point3(x, x, 0.0) for x in range(5)]
    tall = [Point3(x, x, 100.0 * x) for x in range(5)]
    assert detect(flat).fit == detect(tall).fit


def test_constant_x_surfaces_fit_undefined():
    with pytest.raises(DegenerateFitError) as exc:
        detect([Point3(5, 1, 0), Point3(5, 2, 0), Point3(5, 9, 0)])
    assert exc.value.code == "fit_undefined"


def test_single_point_is_degenerate():
    with pytest.raises(DegenerateFitError):
        fit_line([Point3(1, 2, 3)])


def test_empty_input_is_insufficient():
    with pytest.raises(InsufficientDataError) as exc:
        detect([])
    assert isinstance(exc.value, DetectionError)
    assert exc.value.code == "insufficient_data"


def test_negative_threshold_rejected():
    with pytest.raises(ValueError):
        detect([Point3(0, 0, 0), Point3(1, 1, 0)], threshold=-0.1)


def test_default_threshold_is_005():
    # 拟合 y = 0.008x + 0.028，偏差依次为 0.028 / 0.064 / 0.044 / 0.008
    pts = [Point3(0, 0.0, 0), Point3(1, 0.1, 0), Point3(2, 0.0, 0), Point3(3, 0.06, 0)]
    result = detect(pts)
    assert result.fit.m == pytest.approx(0.008)
    assert result.fit.b == pytest.approx(0.028)
    assert result.outliers == (Point3(1, 0.1, 0),)


def test_annotate_builds_spheres_then_polyline(bump_points):
    result = detect(bump_points, threshold=0.5)
    annotations = annotate_detection(
        result, sphere_radius=0.1, sphere_color="orange", line_color="cyan", line_thickness=2.0
    )

    assert annotations[0] == Sphere(position=Point3(5.0, 12.0, 0.0), radius=0.1, color="orange")
    assert isinstance(annotations[1], Polyline)
    assert annotations[1].points == result.inliers
    assert annotations[1].color == "cyan"
    assert len(annotations) == 2


def test_annotate_skips_polyline_when_disabled_or_too_few_inliers():
    pts = [Point3(0, 0, 0), Point3(1, 3, 0), Point3(2, 0, 0)]
    result = detect(pts, threshold=0.5)
    assert len(result.inliers) == 0

    annotations = annotate_detection(result, sphere_radius=0.02, sphere_color="red")
    assert all(isinstance(a, Sphere) for a in annotations)

    result = detect(pts, threshold=1.0)
    annotations = annotate_detection(result, sphere_radius=0.02, sphere_color="red", connect_inliers=False)
    assert [type(a) for a in annotations] == [Sphere]


def test_settings_default_threshold_comes_from_detector():
    from pointcloud_sys.app.core.anomaly import DEFAULT_THRESHOLD
    from pointcloud_sys.app.core.config import Settings

    assert Settings.model_fields["DEFAULT_THRESHOLD"].default == DEFAULT_THRESHOLD == 0.05
