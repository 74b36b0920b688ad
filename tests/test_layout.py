import pytest

from pdf_converter.errors import InvalidGeometry, PartialItemFailure, StrategyExecutionError
from pdf_converter.geometry import page_dimensions
from pdf_converter.layout import decode_image, layout_collage, layout_sequence, layout_single_page
from pdf_converter.models import ConversionOptions, FitMode, PageSize


def test_decode_applies_exif_orientation_before_measuring(make_image):
    # orientation 6 means the stored pixels are rotated 90 degrees
    data = make_image(40, 20, fmt="JPEG", orientation=6)
    source = decode_image(data, 0)
    assert (source.width, source.height) == (20, 40)


def test_decode_failure_is_partial_item_failure():
    with pytest.raises(PartialItemFailure) as exc:
        decode_image(b"garbage", 3)
    assert exc.value.index == 3
    assert exc.value.message.startswith("item 3:")


def test_single_page_is_offset_by_margin():
    page = page_dimensions(PageSize.A4)
    box = layout_single_page(100, 100, page, 20, FitMode.CONTAIN)
    assert box.x == pytest.approx(20)
    assert box.width == pytest.approx(595.28 - 40)
    assert box.y == pytest.approx(20 + (841.89 - 40 - box.height) / 2)


def test_sequence_skips_bad_items(make_image):
    layout = layout_sequence([make_image(), b"broken", make_image(10, 30)], ConversionOptions())
    assert layout.page_count == 2
    assert [failure.index for failure in layout.failures] == [1]
    assert layout.warnings[0].startswith("item 1: could not decode image")


def test_sequence_with_no_decodable_image_fails():
    with pytest.raises(StrategyExecutionError) as exc:
        layout_sequence([b"a", b"b"], ConversionOptions())
    assert len(exc.value.item_failures) == 2


def test_collage_places_fifth_image_top_left_of_second_page(make_image):
    page = page_dimensions(PageSize.A4)
    images = [make_image(30, 30) for _ in range(5)]
    layout = layout_collage(images, 2, 2, 10, page, 20)
    assert layout.page_count == 2
    assert len(layout.pages[0].placements) == 4
    placement = layout.pages[1].placements[0]
    assert placement.source.index == 4
    cell_h = layout.cell_height
    assert placement.clip.x == pytest.approx(20)
    assert placement.clip.y == pytest.approx(page.height_pt - 20 - cell_h)


def test_collage_row_zero_is_top(make_image):
    page = page_dimensions(PageSize.A4)
    layout = layout_collage([make_image() for _ in range(4)], 2, 2, 10, page, 20)
    top_left, top_right, bottom_left, _ = layout.pages[0].placements
    assert top_left.clip.y > bottom_left.clip.y
    assert top_right.clip.x == pytest.approx(20 + layout.cell_width + 10)
    assert bottom_left.clip.y == pytest.approx(page.height_pt - 20 - 2 * layout.cell_height - 10)


def test_collage_failed_item_leaves_slot_empty(make_image):
    page = page_dimensions(PageSize.A4)
    layout = layout_collage([make_image(), b"bad", make_image()], 2, 2, 10, page, 20)
    indexes = [placement.source.index for placement in layout.pages[0].placements]
    assert indexes == [0, 2]
    # image 2 still sits in the second row
    assert layout.pages[0].placements[1].clip.x == pytest.approx(20)


def test_collage_geometry_checked_before_decoding(make_image):
    calls = []

    def spy(data, index):
        calls.append(index)
        return decode_image(data, index)

    page = page_dimensions(PageSize.A4)
    with pytest.raises(InvalidGeometry):
        layout_collage([make_image()], 10, 1, 50, page, 50, decoder=spy)
    assert calls == []
