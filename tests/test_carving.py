"""Tests for the resizing loop and the public resize entry point."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from collections import Counter

import numpy as np
import torch
import pytest
from seamcarving.grid import PixelGrid
from seamcarving.energy import energy_map
from seamcarving.errors import InvalidTarget, ShapeError
from seamcarving import carving
from seamcarving.seam import collect_seams, dp_seam
from seamcarving.carving import AxisState, Resizer, resize, carve_image
from conftest import PI_ROWS, make_gradient_image, make_random_grid, make_uniform_grid


class TestResizer:
    @pytest.mark.parametrize("target", [(3, 4), (7, 5), (5, 5), (2, 9), (9, 2), (1, 1), (12, 11)])
    def test_reaches_target_size(self, target):
        grid = make_random_grid(5, 6)
        Resizer(grid, *target).run()
        assert (grid.width, grid.height) == target

    def test_uniform_4x4_to_2x4(self, uniform_grid):
        """Two vertical removals, nothing horizontal, every pixel untouched."""
        resizer = Resizer(uniform_grid, target_width=2, target_height=4)
        resizer.run()

        assert resizer.iterations == 2
        assert resizer.operations == Counter({('vertical', 'remove'): 2})
        assert uniform_grid.shape == (4, 2)
        expected = torch.tensor([10, 20, 30], dtype=torch.uint8).view(3, 1, 1)
        assert (uniform_grid.data == expected).all()

    def test_same_size_is_noop(self):
        grid = make_random_grid(5, 6)
        original = grid.data.clone()
        resizer = Resizer(grid, 6, 5)

        assert resizer.done
        assert resizer.step() is False
        assert resizer.run() is grid
        assert resizer.iterations == 0
        assert torch.equal(grid.data, original)

    @pytest.mark.parametrize("target", [(0, 3), (3, 0), (0, 0), (-2, 3), (2.5, 3), (True, 3)])
    def test_invalid_target_has_no_side_effects(self, target):
        grid = make_random_grid(3, 3)
        original = grid.data.clone()
        with pytest.raises(InvalidTarget):
            Resizer(grid, *target)
        assert torch.equal(grid.data, original)

    def test_axis_states(self):
        grid = make_random_grid(5, 6)
        resizer = Resizer(grid, 4, 7)
        assert resizer.width_state is AxisState.SHRINKING
        assert resizer.height_state is AxisState.GROWING
        resizer.run()
        assert resizer.width_state is AxisState.DONE
        assert resizer.height_state is AxisState.DONE

    def test_strict_alternation(self):
        """One width step, then one height step, starting with width."""
        grid = make_random_grid(6, 6)
        resizer = Resizer(grid, 4, 8)
        sizes = []
        while resizer.step():
            sizes.append((grid.width, grid.height))
        assert sizes == [(5, 6), (5, 7), (4, 7), (4, 8)]

    def test_single_axis_takes_every_step(self):
        grid = make_random_grid(6, 6)
        resizer = Resizer(grid, 6, 3)
        sizes = []
        while resizer.step():
            sizes.append((grid.width, grid.height))
        assert sizes == [(6, 5), (6, 4), (6, 3)]
        assert resizer.operations == Counter({('horizontal', 'remove'): 3})

    def test_uneven_work_finishes_longer_axis_alone(self):
        grid = make_random_grid(6, 8)
        resizer = Resizer(grid, 4, 5)
        sizes = []
        while resizer.step():
            sizes.append((grid.width, grid.height))
        assert sizes == [(7, 6), (7, 5), (6, 5), (5, 5), (4, 5)]

    def test_interrupted_run_leaves_valid_grid(self):
        grid = make_random_grid(8, 8)
        resizer = Resizer(grid, 5, 10)
        for _ in range(3):
            resizer.step()
        assert grid.data.shape == (3, grid.height, grid.width)
        assert (grid.width, grid.height) == (6, 9)
        resizer.run()
        assert (grid.width, grid.height) == (5, 10)

    def test_removes_lowest_energy_seam(self):
        grid = make_random_grid(7, 9)
        seam = dp_seam(energy_map(grid))
        expected = grid.clone().remove_column(seam).data
        Resizer(grid, 8, 7).run()
        assert torch.equal(grid.data, expected)

    @pytest.mark.parametrize("energy", ['gradient', 'squared_gradient'])
    @pytest.mark.parametrize("target", [(8, 13), (14, 6), (5, 5), (16, 18)])
    def test_incremental_matches_full(self, energy, target):
        full = make_random_grid(12, 10)
        incremental = full.clone()
        Resizer(full, *target, energy=energy).run()
        Resizer(incremental, *target, energy=energy, incremental=True).run()
        assert torch.equal(full.data, incremental.data)

    def test_unknown_energy(self):
        with pytest.raises(ValueError):
            Resizer(make_random_grid(4, 4), 3, 3, energy='sobel').run()


class TestEnlargement:
    def test_one_column_of_neighbour_averages(self):
        data = torch.tensor([[[1., 5., 2., 8.],
                              [3., 9., 4., 7.],
                              [6., 0., 5., 2.]]])
        grid = PixelGrid(data.clone())
        seam = dp_seam(energy_map(grid))
        Resizer(grid, 5, 3).run()

        assert grid.shape == (3, 5)
        for r in range(3):
            s = seam[r].item()
            row = grid.data[0, r]
            # Every original pixel is still there, in order
            assert torch.equal(torch.cat([row[:s], row[s + 1:]]), data[0, r])
            expected = data[0, r, 0] if s == 0 else (data[0, r, s - 1] + data[0, r, s]) / 2
            assert row[s].item() == expected.item()

    def test_grows_past_twice_the_width(self):
        grid = make_random_grid(3, 2)
        resizer = Resizer(grid, 7, 3)
        resizer.run()
        assert grid.shape == (3, 7)
        assert resizer.operations == Counter({('vertical', 'insert'): 5})

    def test_single_pixel_grows_by_copying(self):
        grid = PixelGrid(torch.tensor([[[42]]], dtype=torch.uint8))
        Resizer(grid, 3, 2).run()
        assert (grid.data == 42).all()
        assert grid.shape == (2, 3)

    def test_insertions_spread_across_columns(self):
        """Planned seams go through different columns instead of one stripe."""
        image = make_gradient_image(6, 10, channels=0) * 100
        grid = PixelGrid(image.round().to(torch.uint8))
        original = grid.data.clone()
        Resizer(grid, 13, 6).run()
        for r in range(6):
            values = grid.data[0, r].tolist()
            # Each original value still appears, so nothing was overwritten
            for v in original[0, r].tolist():
                assert v in values
            assert values == sorted(values)
            # Re-inserting the cheapest seam would stack copies of the border value
            assert max(Counter(values).values()) <= 2

    def test_enlarge_both_axes(self):
        grid = make_random_grid(4, 5)
        resizer = Resizer(grid, 8, 7)
        resizer.run()
        assert grid.shape == (7, 8)
        assert resizer.operations == Counter({('vertical', 'insert'): 3,
                                              ('horizontal', 'insert'): 3})

    @staticmethod
    def _record_plans(monkeypatch):
        calls = []

        def recording(grid, count, direction='vertical', kind='gradient'):
            calls.append((direction, count))
            return collect_seams(grid, count, direction, kind)

        monkeypatch.setattr(carving, 'collect_seams', recording)
        return calls

    def test_insertions_spread_when_both_axes_grow(self, monkeypatch):
        """Height steps keep the width plan, so columns are not stacked either."""
        calls = self._record_plans(monkeypatch)
        image = make_gradient_image(10, 10, channels=0) * 100
        grid = PixelGrid(image.round().to(torch.uint8))
        original = grid.data.clone()
        Resizer(grid, 16, 16).run()

        assert grid.shape == (16, 16)
        assert calls == [('vertical', 6), ('horizontal', 6)]
        for r in range(16):
            values = grid.data[0, r].tolist()
            for v in original[0, 0].tolist():
                assert v in values
            assert values == sorted(values)
            assert max(Counter(values).values()) <= 2

    def test_plan_survives_removals_on_the_other_axis(self, monkeypatch):
        calls = self._record_plans(monkeypatch)
        grid = make_random_grid(8, 8)
        resizer = Resizer(grid, 12, 5)
        resizer.run()

        assert grid.shape == (5, 12)
        assert calls == [('vertical', 4)]
        assert resizer.operations == Counter({('vertical', 'insert'): 4,
                                              ('horizontal', 'remove'): 3})

    def test_planned_seam_follows_crossing(self):
        """A planned seam drops or repeats its entry where the other seam crosses it."""
        planned = torch.tensor([2, 2, 3, 3])
        crossing = torch.tensor([3, 3, 1, 0, 0])
        removed = carving._follow_crossing(planned, crossing, 'remove')
        inserted = carving._follow_crossing(planned, crossing, 'insert')
        assert removed.tolist() == [2, 3, 3]
        assert inserted.tolist() == [2, 2, 2, 3, 3]

    def test_crossing_plans_may_split_after_insertion(self):
        """Shifting a crossing plan past an inserted seam can leave a gap of two."""
        grid = make_random_grid(3, 4)
        resizer = Resizer(grid, 6, 3)
        resizer._plans['vertical'] = [torch.tensor([1, 2, 3]), torch.tensor([2, 2, 1])]
        resizer.step()

        (shifted,) = resizer._plans['vertical']
        assert shifted.tolist() == [3, 3, 1]
        assert grid.shape == (3, 5)


class TestResize:
    def test_removes_the_right_vertical_seam(self):
        pixels = bytes(v for row in PI_ROWS for v in row)
        for energy in ('gradient', 'squared_gradient'):
            out, w, h = resize(pixels, 8, 3, 1, 7, 3, energy=energy)
            assert (w, h) == (7, 3)
            assert out == bytes([3, 1, 4, 0, 0, 1, 5,
                                 9, 2, 6, 0, 0, 5, 3,
                                 5, 8, 0, 0, 9, 7, 9])

    def test_removes_the_right_horizontal_seam(self):
        """Carving the transposed image transposes the result."""
        rows = torch.tensor(PI_ROWS, dtype=torch.uint8)
        out, w, h = resize(rows.T.contiguous(), 3, 8, 1, 3, 7)
        assert (w, h) == (3, 7)
        expected = torch.tensor([[3, 1, 4, 0, 0, 1, 5],
                                 [9, 2, 6, 0, 0, 5, 3],
                                 [5, 8, 0, 0, 9, 7, 9]], dtype=torch.uint8)
        assert torch.equal(out.reshape(7, 3), expected.T)

    def test_horizontal_matches_transposed_vertical(self):
        grid = make_random_grid(9, 12)
        transposed = PixelGrid(grid.data.transpose(1, 2).contiguous())
        Resizer(grid, 12, 6).run()
        Resizer(transposed, 6, 12).run()
        assert torch.equal(grid.data, transposed.data.transpose(1, 2))

    def test_shape_error_before_carving(self):
        with pytest.raises(ShapeError):
            resize(bytes(35), 4, 3, 3, 2, 2)

    def test_shape_error_takes_precedence(self):
        with pytest.raises(ShapeError):
            resize(bytes(5), 2, 2, 1, 0, 0)

    @pytest.mark.parametrize("target", [(0, 2), (2, 0)])
    def test_invalid_target(self, target):
        pixels = bytearray(range(27))
        with pytest.raises(InvalidTarget):
            resize(pixels, 3, 3, 3, *target)
        assert pixels == bytearray(range(27))

    def test_returns_same_buffer_kind(self):
        values = list(range(48))
        out, w, h = resize(values, 4, 4, 3, 3, 2)
        assert isinstance(out, list)
        assert len(out) == w * h * 3

        arr = np.arange(48, dtype=np.float32)
        out, w, h = resize(arr, 4, 4, 3, 3, 2)
        assert isinstance(out, np.ndarray)
        assert out.dtype == np.float32
        assert out.shape == (w * h * 3,)

        tensor = torch.arange(48, dtype=torch.int16)
        out, _, _ = resize(tensor, 4, 4, 3, 3, 2)
        assert isinstance(out, torch.Tensor)
        assert out.dtype == torch.int16

        out, _, _ = resize(bytes(48), 4, 4, 3, 3, 2)
        assert out == bytes(18)

    def test_same_size_returns_input(self):
        pixels = bytes(range(60))
        out, w, h = resize(pixels, 5, 4, 3, 5, 4)
        assert (out, w, h) == (pixels, 5, 4)

    @pytest.mark.parametrize("target", [(1, 1), (6, 2), (2, 6), (5, 4)])
    def test_output_dimensions(self, target):
        gen = torch.Generator().manual_seed(0)
        pixels = torch.randint(0, 256, (4 * 5 * 4,), dtype=torch.uint8, generator=gen)
        out, w, h = resize(pixels.numpy().tobytes(), 5, 4, 4, *target)
        assert (w, h) == target
        assert len(out) == w * h * 4


class TestCarveImage:
    def test_rgb_tensor(self):
        image = make_gradient_image(10, 12)
        carved = carve_image(image, 8, 9)
        assert carved.shape == (3, 9, 8)
        assert image.shape == (3, 10, 12)

    def test_grayscale_tensor(self):
        image = make_gradient_image(10, 12, channels=0)
        carved = carve_image(image, 14, 7, incremental=True)
        assert carved.shape == (7, 14)
