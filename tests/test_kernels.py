import numpy as np
from tidespin.bodies import Body
from tidespin.kernels import tidal_force, tidal_potential


def make_pair(spin_src=None, v_src=(0.0, 0.0, 0.0), v_tgt=(0.0, 0.3, 0.0)):
    source = Body(m=1.0, x=[0.0, 0.0, 0.0], v=v_src, r=0.1)
    target = Body(m=0.001, x=[1.0, 0.0, 0.0], v=v_tgt, r=0.01)
    return source, target


def test_scenario_a_spin_aligned_force_is_radial():
    source, target = make_pair()
    G, k2 = 1.0, 0.3
    spin = (0.0, 0.0, 0.5)
    F = tidal_force(source, target, G, k2, 0.0, spin)

    mu = source.m*target.m/(source.m + target.m)
    qp = target.m*k2*0.1**5/mu
    t2 = 0.5**2/2.0
    t4 = 6.0*G*target.m
    # d = source - target = (-1, 0, 0), Omega.d = 0
    expected_x = qp*(-t2 - t4)*(-1.0)
    assert np.isclose(F[0], expected_x, rtol=1e-13, atol=0.0)
    assert F[1] == 0.0
    assert F[2] == 0.0


def test_scenario_a_tilted_spin_adds_spin_axis_term():
    source, target = make_pair()
    k2 = 0.3
    spin = (0.3, 0.0, 0.4)
    F = tidal_force(source, target, 1.0, k2, 0.0, spin)

    mu = source.m*target.m/(source.m + target.m)
    qp = target.m*k2*0.1**5/mu
    t3 = -0.3  # Omega.d / r^5 with d = (-1, 0, 0)
    assert F[1] == 0.0
    assert np.isclose(F[2], -qp*t3*0.4, rtol=1e-13, atol=0.0)
    assert F[2] > 0.0


def test_zero_sigma_is_pure_quadrupole():
    source, target = make_pair(v_src=(0.01, -0.02, 0.0), v_tgt=(0.0, 0.3, 0.05))
    target.x = np.array([0.7, 0.4, -0.2])
    spin = np.array([0.1, -0.2, 0.6])
    G, k2 = 1.3, 0.25

    F0 = tidal_force(source, target, G, k2, 0.0, spin)

    d = source.x - target.x
    r = np.linalg.norm(d)
    mu = source.m*target.m/(source.m + target.m)
    qp = target.m*k2*source.r**5/mu
    od = np.dot(spin, d)
    radial = 5*od**2/(2*r**7) - np.dot(spin, spin)/(2*r**5) - 6*G*target.m/r**8
    expected = qp*(radial*d - od/r**5*spin)
    assert np.allclose(F0, expected, rtol=1e-12, atol=0.0)

    F1 = tidal_force(source, target, G, k2, 1e3, spin)
    assert not np.allclose(F0, F1, rtol=1e-9, atol=0.0)


def test_dissipative_term_matches_lag_formula():
    source, target = make_pair(v_src=(0.0, 0.0, 0.0), v_tgt=(0.1, 0.3, 0.0))
    spin = np.array([0.0, 0.0, 0.5])
    G, k2, sigma = 1.0, 0.3, 50.0

    diss = tidal_force(source, target, G, k2, sigma, spin) - tidal_force(source, target, G, k2, 0.0, spin)

    d = source.x - target.x
    v = source.v - target.v
    r2 = np.dot(d, d)
    A = k2*source.r**5
    mu = source.m*target.m/(source.m + target.m)
    h = np.cross(d, v)
    expected = (-9*sigma*target.m**2*A**2/(2*mu*r2**5))*(3*np.dot(d, v)*d + np.cross(h - r2*spin, d))
    assert np.allclose(diss, expected, rtol=1e-7, atol=1e-30)
    assert np.linalg.norm(diss) > 0.0


def test_point_mass_source_is_inert():
    source, target = make_pair(v_tgt=(0.2, 0.1, 0.0))
    F = tidal_force(source, target, 1.0, 0.0, 123.0, (1.0, 2.0, 3.0))
    assert np.array_equal(F, np.zeros(3))


def test_tidal_potential_uses_target_radius():
    source, target = make_pair()
    target.x = np.array([0.0, 2.0, 0.0])
    U = tidal_potential(source, target, 1.0, 0.3)
    expected = -0.5*1.0*source.m*target.m/2.0**6*(source.m/target.m)*0.3*target.r**5
    assert U < 0.0
    assert np.isclose(U, expected, rtol=1e-14)
