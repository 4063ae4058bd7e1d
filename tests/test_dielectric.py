"""Unit tests for the dielectric material module.

Tests cover:
- Refraction following Snell's law
- Probabilistic reflection using Schlick's approximation
- Total internal reflection
- Material registry operations and validation
"""

import math

import pytest
import taichi as ti


def _scatter(ior, incident, normal, front_face):
    """Scatter once off a dielectric and return (direction, attenuation, did, draws)."""
    from spheretrace.core.rng import rng_init
    from spheretrace.materials.dielectric import scatter_dielectric, vec3

    direction = ti.Vector.field(3, dtype=ti.f32, shape=())
    attenuation = ti.Vector.field(3, dtype=ti.f32, shape=())
    did_scatter = ti.field(dtype=ti.i32, shape=())
    draws = ti.field(dtype=ti.u32, shape=())

    @ti.kernel
    def test_kernel(eta: ti.f32, i: vec3, n: vec3, front: ti.i32):
        state = rng_init(ti.u32(0), ti.u32(0))
        d, att, did, s = scatter_dielectric(eta, i, n, front, state)
        direction[None] = d
        attenuation[None] = att
        did_scatter[None] = did
        draws[None] = s - state

    test_kernel(ior, vec3(*incident), vec3(*normal), front_face)
    return direction[None], attenuation[None], did_scatter[None], draws[None]


class TestDielectricScatter:
    """Tests for scatter_dielectric(), driven by fixed random sequences."""

    def test_normal_incidence_refracts_straight(self):
        """At normal incidence a refracted ray continues undeviated."""
        from spheretrace.core.rng import use_fixed_sequence

        use_fixed_sequence([0.5])
        d, att, did, draws = _scatter(1.5, (0.0, 0.0, -1.0), (0.0, 0.0, 1.0), 1)
        assert did == 1
        assert draws == 1
        assert abs(d[0]) < 1e-6
        assert abs(d[1]) < 1e-6
        assert abs(d[2] + 1.0) < 1e-5
        assert abs(att[0] - 1.0) < 1e-6
        assert abs(att[1] - 1.0) < 1e-6
        assert abs(att[2] - 1.0) < 1e-6

    def test_low_draw_reflects(self):
        """A draw below the Schlick reflectance (0.04 head-on) reflects."""
        from spheretrace.core.rng import use_fixed_sequence

        use_fixed_sequence([0.01])
        d, _, _, _ = _scatter(1.5, (0.0, 0.0, -1.0), (0.0, 0.0, 1.0), 1)
        assert abs(d[2] - 1.0) < 1e-5

    def test_snell_entering(self):
        """Entering glass at 45 degrees bends the ray toward the normal."""
        from spheretrace.core.rng import use_fixed_sequence

        use_fixed_sequence([0.99])
        d, _, _, _ = _scatter(1.5, (1.0, -1.0, 0.0), (0.0, 1.0, 0.0), 1)
        sin_t = math.sin(math.pi / 4.0) / 1.5
        assert abs(d[0] - sin_t) < 1e-4
        assert abs(d[1] + math.sqrt(1.0 - sin_t * sin_t)) < 1e-4
        assert abs(math.sqrt(d[0] ** 2 + d[1] ** 2 + d[2] ** 2) - 1.0) < 1e-5

    def test_snell_exiting(self):
        """Exiting glass uses the inverse ratio and bends away from the normal."""
        from spheretrace.core.rng import use_fixed_sequence

        use_fixed_sequence([0.99])
        # 20 degrees inside the glass, normal facing the incoming ray
        theta = math.radians(20.0)
        incident = (math.sin(theta), -math.cos(theta), 0.0)
        d, _, _, _ = _scatter(1.5, incident, (0.0, 1.0, 0.0), 0)
        assert abs(d[0] - 1.5 * math.sin(theta)) < 1e-4

    def test_total_internal_reflection(self):
        """Steep angles inside the glass always reflect, without a draw."""
        from spheretrace.core.rng import use_fixed_sequence

        use_fixed_sequence([0.99])
        theta = math.radians(60.0)
        incident = (math.sin(theta), -math.cos(theta), 0.0)
        d, _, did, draws = _scatter(1.5, incident, (0.0, 1.0, 0.0), 0)
        assert did == 1
        assert draws == 0
        assert abs(d[0] - math.sin(theta)) < 1e-5
        assert abs(d[1] - math.cos(theta)) < 1e-5

    def test_unit_ior_never_bends(self):
        """An IOR of 1 refracts without deviation."""
        from spheretrace.core.rng import use_fixed_sequence

        use_fixed_sequence([0.99])
        d, _, _, _ = _scatter(1.0, (1.0, -1.0, 0.0), (0.0, 1.0, 0.0), 1)
        inv_sqrt2 = 1.0 / math.sqrt(2.0)
        assert abs(d[0] - inv_sqrt2) < 1e-5
        assert abs(d[1] + inv_sqrt2) < 1e-5


class TestDielectricHelpers:
    """Tests for will_reflect() and fresnel_reflectance()."""

    def test_will_reflect(self):
        """will_reflect() detects total internal reflection."""
        from spheretrace.materials.dielectric import will_reflect

        result = ti.field(dtype=ti.i32, shape=2)

        @ti.kernel
        def test_kernel():
            normal = ti.math.vec3(0.0, 1.0, 0.0)
            steep = ti.math.vec3(ti.sin(1.0472), -ti.cos(1.0472), 0.0)
            result[0] = will_reflect(1.5, steep, normal, 0)
            result[1] = will_reflect(1.5, steep, normal, 1)

        test_kernel()
        assert result[0] == 1
        assert result[1] == 0

    def test_fresnel_head_on(self):
        """Head-on reflectance for glass is ((1 - n) / (1 + n))^2 = 0.04."""
        from spheretrace.materials.dielectric import fresnel_reflectance

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = fresnel_reflectance(
                1.5, ti.math.vec3(0.0, 0.0, -1.0), ti.math.vec3(0.0, 0.0, 1.0), 1
            )

        test_kernel()
        assert abs(result[None] - 0.04) < 1e-5


class TestMaterialRegistry:
    """Tests for material registry operations."""

    def test_add_and_get_material(self):
        """Test adding a material and retrieving its IOR."""
        from spheretrace.materials.dielectric import add_dielectric_material, get_dielectric_ior

        idx = add_dielectric_material(2.4)
        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(mat_idx: ti.i32):
            result[None] = get_dielectric_ior(mat_idx)

        test_kernel(idx)
        assert abs(result[None] - 2.4) < 1e-6

    def test_default_ior(self):
        """The default IOR is 1.5."""
        from spheretrace.materials.dielectric import add_dielectric_material, dielectric_iors

        idx = add_dielectric_material()
        assert abs(dielectric_iors[idx] - 1.5) < 1e-6

    def test_ior_validation(self):
        """Non-positive IOR values are rejected."""
        from spheretrace.materials.dielectric import add_dielectric_material

        with pytest.raises(ValueError, match="positive"):
            add_dielectric_material(0.0)
        with pytest.raises(ValueError, match="positive"):
            add_dielectric_material(-1.5)

    def test_material_count(self):
        """Test that material count is tracked correctly."""
        from spheretrace.materials.dielectric import (
            add_dielectric_material,
            clear_dielectric_materials,
            get_dielectric_material_count,
        )

        add_dielectric_material(1.33)
        add_dielectric_material(0.75)
        assert get_dielectric_material_count() == 2
        clear_dielectric_materials()
        assert get_dielectric_material_count() == 0
