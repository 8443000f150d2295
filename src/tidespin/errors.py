from __future__ import annotations


class TidesSpinError(Exception):
    """Base class for errors raised by the tides/spin machinery."""


class SpinODELengthError(TidesSpinError):
    """The spin-tracked body set no longer matches the ODE layout.

    Raised through `Simulation.fatal`. The set of bodies with a moment of
    inertia and a full spin vector is fixed when `initialize_spin_ode` runs;
    adding, removing or re-tagging bodies afterwards is not supported.
    """


class DomainError(TidesSpinError):
    """A derivation was asked for on a body lacking the needed parameters."""


class MissingSimulationError(TidesSpinError):
    """A diagnostic was queried on extras with no attached simulation."""
