import pytest

from fractal_bitshadows import (ColorRGB, Palette, GradientColorPalette, CyclingColorSource,
                                PaletteSweep, ColorSource, ColorSourceError, default_palette,
                                create_color_source)
from fractal_bitshadows.rendering.coloring import as_color, list_palettes


def test_color_from_uint8():
    color = ColorRGB.from_uint8(255, 0, 51)
    assert color.to_tuple() == pytest.approx((1.0, 0.0, 0.2))
    assert color.to_uint8_tuple() == (255, 0, 51)
    assert color.to_hex() == '#ff0033'


def test_color_rejects_out_of_range():
    with pytest.raises(ValueError):
        ColorRGB(1.5, 0, 0)


def test_palette_interpolation():
    palette = Palette([(0.0, 0.0, 0.0), (1.0, 1.0, 1.0)])
    assert palette.interpolate(0).to_tuple() == (0, 0, 0)
    assert palette.interpolate(1).to_tuple() == (1, 1, 1)
    assert palette.interpolate(0.5).to_tuple() == pytest.approx((0.5, 0.5, 0.5))
    assert palette.interpolate(2).to_tuple() == (1, 1, 1)


def test_palette_accepts_uint8_triples():
    palette = Palette([(255, 0, 0), (0, 0, 255)])
    assert palette.colors[0] == ColorRGB(1.0, 0.0, 0.0)


def test_palette_needs_two_colors():
    with pytest.raises(ValueError):
        Palette([(0.0, 0.0, 0.0)])


def test_palette_gpl_file(tmp_path):
    palette = Palette([(255, 0, 0), (0, 128, 255)], name="Test")
    path = tmp_path / "test.gpl"
    palette.save_to_file(path)
    loaded = Palette.load_from_file(path)
    assert loaded.name == "Test"
    assert [c.to_uint8_tuple() for c in loaded.colors] == [(255, 0, 0), (0, 128, 255)]


def test_palette_from_matplotlib():
    palette = Palette.from_matplotlib('viridis', n_samples=8)
    assert len(palette.colors) == 8
    with pytest.raises(ValueError):
        Palette.from_matplotlib('no_such_colormap')


def test_gradient_palette_draws_from_gradient():
    palette = GradientColorPalette(seed=1).add_color(min=3, max=3, start_color=(0, 0, 0),
                                                       end_color=(1.0, 1.0, 1.0))
    assert len(palette) == 3
    allowed = {ColorRGB(0, 0, 0), ColorRGB(0.5, 0.5, 0.5), ColorRGB(1, 1, 1)}
    assert all(palette.next() in allowed for _ in range(20))


def test_gradient_palette_reset_replays():
    palette = default_palette(seed=4)
    first = [palette.next() for _ in range(30)]
    palette.reset()
    assert [palette.next() for _ in range(30)] == first


def test_gradient_palette_rejects_bad_steps():
    with pytest.raises(ValueError):
        GradientColorPalette().add_color(min=5, max=2, start_color=(0, 0, 0), end_color=(1.0, 1.0, 1.0))


def test_empty_gradient_palette_fails():
    with pytest.raises(ColorSourceError):
        GradientColorPalette().next()


def test_default_palette_size():
    palette = default_palette(seed=0)
    assert 5 * 12 <= len(palette) <= 5 * 24
    assert isinstance(palette.next(), ColorRGB)


def test_cycling_source():
    source = CyclingColorSource(['a', 'b'])
    assert [source.next() for _ in range(5)] == ['a', 'b', 'a', 'b', 'a']
    source.reset()
    assert source.next() == 'a'


def test_cycling_source_limit():
    source = CyclingColorSource(['a'], limit=2)
    source.next()
    source.next()
    with pytest.raises(ColorSourceError):
        source.next()


def test_palette_sweep_wraps():
    palette = Palette([(0.0, 0.0, 0.0), (1.0, 1.0, 1.0)])
    sweep = PaletteSweep(palette, steps=3)
    colors = [sweep.next() for _ in range(4)]
    assert colors[0] == ColorRGB(0, 0, 0)
    assert colors[1].to_tuple() == pytest.approx((0.5, 0.5, 0.5))
    assert colors[2] == ColorRGB(1, 1, 1)
    assert colors[3] == colors[0]


def test_create_color_source():
    assert isinstance(create_color_source('default', seed=1), GradientColorPalette)
    assert isinstance(create_color_source('ocean'), PaletteSweep)
    assert isinstance(create_color_source('plasma'), PaletteSweep)
    assert 'hot' in list_palettes()
    with pytest.raises(ValueError):
        create_color_source('no_such_palette')


def test_sources_satisfy_protocol():
    for source in (default_palette(), CyclingColorSource([1]), create_color_source('hot')):
        assert isinstance(source, ColorSource)


def test_as_color_reads_integer_triples_as_8_bit():
    assert as_color((0, 1, 0)) == ColorRGB.from_uint8(0, 1, 0)
    assert as_color((0.0, 1.0, 0.0)) == ColorRGB(0.0, 1.0, 0.0)
    with pytest.raises(ValueError):
        as_color((0, 0, 300))
