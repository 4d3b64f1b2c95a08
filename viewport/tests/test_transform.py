"""
Tests for viewport coordinate transforms
"""
import pytest

from viewport.constants import MAX_ZOOM, MIN_ZOOM
from viewport.transform import IDENTITY, ClientRect, Transform, clamp_zoom


class TestClientRect:

    def test_unscaled_surface(self):
        rect = ClientRect()

        assert rect.scale == (1.0, 1.0)
        assert rect.client_to_viewbox((120, 80)) == (120, 80)

    def test_scaled_and_offset_surface(self):
        """A 400x300 surface at (100, 50) shows the 800x600 viewBox at half size"""
        rect = ClientRect(left=100, top=50, width=400, height=300)

        assert rect.scale == (2.0, 2.0)
        assert rect.client_to_viewbox((300, 200)) == (400, 300)
        assert rect.viewbox_to_client((400, 300)) == (300, 200)


class TestTransform:

    def test_zoom_clamped_on_construction(self):
        assert Transform(k=10).k == MAX_ZOOM
        assert Transform(k=0.01).k == MIN_ZOOM
        assert clamp_zoom(1.5) == 1.5

    def test_apply_and_invert(self):
        t = Transform(x=30, y=-20, k=2)

        assert t.apply((10, 10)) == (50, 0)
        assert t.invert((50, 0)) == (10, 10)

    def test_sim_client_round_trip(self):
        """to_client_space inverts to_sim_space"""
        t = Transform(x=15, y=40, k=1.7)
        rect = ClientRect(left=12, top=90, width=1000, height=750)

        sim = t.to_sim_space((420, 333), rect)
        back = t.to_client_space(sim, rect)

        assert back[0] == pytest.approx(420)
        assert back[1] == pytest.approx(333)

    def test_panned_keeps_zoom(self):
        t = Transform(x=1, y=2, k=3).panned(10, -5)

        assert (t.x, t.y, t.k) == (11, -3, 3)

    def test_zoom_keeps_anchor_stationary(self):
        """The sim point under the anchor stays under it after zooming"""
        t = Transform(x=50, y=25, k=1.2)
        anchor = (310, 190)
        before = t.invert(anchor)

        zoomed = t.zoomed_at(anchor, 1.1)

        after = zoomed.invert(anchor)
        assert zoomed.k == pytest.approx(1.32)
        assert after[0] == pytest.approx(before[0])
        assert after[1] == pytest.approx(before[1])

    def test_zoom_at_limit_is_noop(self):
        t = Transform(x=7, y=9, k=MAX_ZOOM)

        assert t.zoomed_at((100, 100), 1.1) == t

    def test_svg_attribute(self):
        assert IDENTITY.svg_attribute() == "translate(0.00,0.00) scale(1.0000)"
