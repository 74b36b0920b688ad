import pytest

from pdf_converter.errors import InvalidGeometry
from pdf_converter.geometry import (
    MIN_CELL_PT,
    PAGE_SIZES_PT,
    PageGeometry,
    collage_cell_size,
    fit_box,
    page_dimensions,
    printable_area,
)
from pdf_converter.models import FitMode, Orientation, PageSize


@pytest.mark.parametrize("size", list(PageSize))
def test_landscape_is_swap_of_portrait(size):
    portrait = page_dimensions(size, Orientation.PORTRAIT)
    landscape = page_dimensions(size, Orientation.LANDSCAPE)
    assert (landscape.width_pt, landscape.height_pt) == (portrait.height_pt, portrait.width_pt)


def test_unknown_page_size_falls_back_to_a4():
    page = page_dimensions("B5", "portrait")
    assert (page.width_pt, page.height_pt) == PAGE_SIZES_PT[PageSize.A4]


def test_page_size_parse_is_case_insensitive():
    assert page_dimensions("letter").width_pt == 612.0
    assert page_dimensions("TABLOID", "landscape").width_pt == 1224.0


@pytest.mark.parametrize(
    "source,bound",
    [((400, 300), (200, 200)), ((100, 500), (300, 120)), ((10, 10), (500, 700))],
)
def test_contain_fits_inside_bound_and_keeps_aspect(source, bound):
    box = fit_box(*source, *bound, FitMode.CONTAIN)
    assert box.width <= bound[0] + 1e-9
    assert box.height <= bound[1] + 1e-9
    assert box.width / box.height == pytest.approx(source[0] / source[1])
    # one side touches the bound
    assert box.width == pytest.approx(bound[0]) or box.height == pytest.approx(bound[1])
    assert box.x == pytest.approx((bound[0] - box.width) / 2)
    assert box.y == pytest.approx((bound[1] - box.height) / 2)


def test_cover_overflows_one_axis():
    box = fit_box(400, 200, 100, 100, FitMode.COVER)
    assert box.height == pytest.approx(100)
    assert box.width == pytest.approx(200)
    assert box.x == pytest.approx(-50)


def test_fill_returns_bound():
    box = fit_box(123, 45, 300, 200, FitMode.FILL)
    assert (box.x, box.y, box.width, box.height) == (0, 0, 300, 200)


@pytest.mark.parametrize("bound", [(0, 100), (100, -1)])
def test_fit_box_rejects_empty_bound(bound):
    with pytest.raises(InvalidGeometry):
        fit_box(10, 10, *bound)


def test_fit_box_rejects_empty_source():
    with pytest.raises(InvalidGeometry):
        fit_box(0, 10, 100, 100)


def test_printable_area_rejects_oversized_margin():
    with pytest.raises(InvalidGeometry):
        printable_area(PageGeometry(100, 100), 50)


def test_collage_cell_size_for_default_grid():
    page = page_dimensions(PageSize.A4)
    width, height = collage_cell_size(page, 2, 2, 10, 20)
    assert width == pytest.approx((595.28 - 40 - 10) / 2)
    assert height == pytest.approx((841.89 - 40 - 10) / 2)


def test_collage_cell_below_minimum_is_invalid():
    page = page_dimensions(PageSize.A4)
    with pytest.raises(InvalidGeometry):
        collage_cell_size(page, 10, 1, 50, 50)
    assert MIN_CELL_PT > 0
