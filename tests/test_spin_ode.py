import numpy as np
import pytest
from tidespin.bodies import Body, TidalParams
from tidespin.errors import SpinODELengthError
from tidespin.forces import add_tides_spin
from tidespin.kernels import tidal_force
from tidespin.simulation import Simulation, Extras
from tidespin.spin_ode import SpinContext, initialize_spin_ode, spin_derivatives


def three_body_sim():
    sim = Simulation(G=1.0)
    sim.add(m=1.0, x=[0.0, 0.0, 0.0], v=[0.0, 0.0, 0.0], r=0.05, name="star",
            params=TidalParams(k2=0.03, sigma=2.0, moi=7e-4, sx=0.01, sy=0.02, sz=0.3))
    sim.add(m=1e-3, x=[1.0, 0.0, 0.0], v=[0.0, 1.0, 0.0], r=0.01, name="b",
            params=TidalParams(k2=0.3, sx=0.0, sy=0.0, sz=2.0))
    sim.add(m=2e-3, x=[0.0, -2.0, 0.1], v=[0.7, 0.0, 0.0], r=0.01, name="c")
    extras = Extras(sim)
    effect = add_tides_spin(extras)
    return sim, effect


def test_scenario_c_only_tracked_body_gets_slots():
    sim, effect = three_body_sim()
    ode = initialize_spin_ode(sim, effect)
    assert ode is not None
    assert ode.length == 3
    assert effect.ode is ode
    assert sim.odes == [ode]
    assert np.array_equal(ode.y, sim.bodies[0].params.spin)


def test_no_tracked_bodies_creates_no_ode():
    sim, effect = three_body_sim()
    sim.bodies[0].params.moi = None
    assert initialize_spin_ode(sim, effect) is None
    assert sim.odes == []
    assert effect.ode is None


def test_reinitialization_replaces_ode():
    sim, effect = three_body_sim()
    initialize_spin_ode(sim, effect)
    sim.bodies[1].params.moi = 1e-8
    ode = initialize_spin_ode(sim, effect)
    assert ode.length == 6
    assert sim.odes == [ode]


def test_derivative_is_reaction_torque():
    sim, effect = three_body_sim()
    ode = initialize_spin_ode(sim, effect)
    ydot = np.zeros(ode.length)
    ode.evaluate(ydot, ode.y.copy(), 0.0)

    star = sim.bodies[0]
    p = star.params
    expected = np.zeros(3)
    for other in sim.bodies[1:]:
        mu = star.m*other.m/(star.m + other.m)
        F = tidal_force(star, other, sim.G, p.k2, p.sigma, p.spin)
        expected += np.cross(star.x - other.x, F)*(-mu/p.moi)
    assert np.allclose(ydot, expected, rtol=1e-13, atol=0.0)
    assert np.linalg.norm(ydot) > 0.0


def test_derivative_uses_state_vector_spin():
    sim, effect = three_body_sim()
    ode = initialize_spin_ode(sim, effect)
    y = np.array([0.0, 0.0, 0.9])
    a = np.zeros(3)
    b = np.zeros(3)
    ode.evaluate(a, ode.y.copy(), 0.0)
    ode.evaluate(b, y, 0.0)
    # derivatives are ~1e-10 here, so compare relatively
    assert np.linalg.norm(a) > 0.0 and np.linalg.norm(b) > 0.0
    assert not np.allclose(a, b, rtol=1e-6, atol=0.0)


def test_tracked_body_without_k2_has_constant_spin():
    sim, effect = three_body_sim()
    sim.bodies[0].params.k2 = None
    ode = initialize_spin_ode(sim, effect)
    ydot = np.full(ode.length, 7.0)
    ode.evaluate(ydot, ode.y.copy(), 0.0)
    assert np.array_equal(ydot, np.zeros(3))


def test_scenario_d_layout_mismatch_is_fatal():
    sim, effect = three_body_sim()
    ode = initialize_spin_ode(sim, effect)
    sim.bodies[2].params = TidalParams(moi=1e-6, sx=0.0, sy=0.0, sz=1.0)
    with pytest.raises(SpinODELengthError):
        ode.evaluate(np.zeros(ode.length), ode.y.copy(), 0.0)
    with pytest.raises(SpinODELengthError):
        ode.sync_pre()
    with pytest.raises(SpinODELengthError):
        ode.sync_post()


def test_declared_length_mismatch_is_fatal():
    sim, effect = three_body_sim()
    ode = sim.create_ode(6)
    ctx = SpinContext(sim=sim, effect=effect, hashes=(sim.bodies[0].hash,))
    with pytest.raises(SpinODELengthError):
        spin_derivatives(ctx, ode, np.zeros(6), np.zeros(6), 0.0)


def test_sync_round_trip_is_exact():
    sim, effect = three_body_sim()
    sim.bodies[2].params = TidalParams(moi=3e-7, sx=1.0/3.0, sy=-2.0/7.0, sz=np.pi)
    before = [b.params.as_dict() for b in sim.bodies]
    ode = initialize_spin_ode(sim, effect)
    ode.sync_pre()
    ode.sync_post()
    after = [b.params.as_dict() for b in sim.bodies]
    assert before == after


def test_post_sync_writes_evolved_state_only_to_tracked_bodies():
    sim, effect = three_body_sim()
    untracked = sim.bodies[1].params.as_dict()
    ode = initialize_spin_ode(sim, effect)
    ode.y[:] = [0.5, 0.6, 0.7]
    ode.sync_post()
    assert np.array_equal(sim.bodies[0].params.spin, [0.5, 0.6, 0.7])
    assert sim.bodies[1].params.as_dict() == untracked
    assert sim.bodies[2].params.as_dict() == {}


def test_slots_follow_body_identity_after_reorder():
    sim, effect = three_body_sim()
    sim.bodies[2].params = TidalParams(moi=3e-7, sx=0.0, sy=0.0, sz=5.0)
    ode = initialize_spin_ode(sim, effect)
    assert ode.length == 6
    star_hash = sim.bodies[0].hash
    sim.bodies.reverse()
    ode.sync_pre()
    k = ode.context.slots[star_hash]
    assert np.array_equal(ode.y[3*k:3*k+3], sim.get(star_hash).params.spin)


def test_variational_bodies_are_ignored():
    sim, effect = three_body_sim()
    sim.add(Body(m=1e-3, x=[1.0, 0.0, 0.0], variational=True,
                 params=TidalParams(moi=1.0, sx=0.0, sy=0.0, sz=1.0)))
    assert sim.N_var == 1
    ode = initialize_spin_ode(sim, effect)
    assert ode.length == 3
    ode.sync_pre()


def test_coincident_and_massless_neighbours_keep_derivative_finite():
    sim, effect = three_body_sim()
    ode = initialize_spin_ode(sim, effect)
    ydot = np.zeros(ode.length)
    ode.evaluate(ydot, ode.y.copy(), 0.0)
    reference = ydot.copy()

    star = sim.bodies[0]
    sim.add(m=5e-4, x=star.x.copy(), v=[0.0, 0.2, 0.0], name="on-top")
    sim.add(m=0.0, x=[0.5, 0.5, 0.0], v=[0.0, 0.0, 0.0], name="test particle")
    ydot = np.zeros(ode.length)
    ode.evaluate(ydot, ode.y.copy(), 0.0)
    assert np.all(np.isfinite(ydot))
    assert np.allclose(ydot, reference, rtol=1e-14, atol=0.0)
