"""
High-level classes shared by the continuous-time heterogeneous agent models in
HACT.  A "micro" model (an AgentType) solves the household problem taking prices
as given; a "macro" model (a Market) wraps one or more agent types and searches
for the prices at which their aggregate behavior clears markets.
"""

# Set logging and define basic functions
import inspect
import logging
from copy import copy, deepcopy
from time import time
from typing import Any, Iterator

import numpy as np
import pandas as pd

from HACT.utilities import get_arg_names

logging.basicConfig(format="%(message)s")
_log = logging.getLogger("HACT")
_log.setLevel(logging.ERROR)


def disable_logging():
    _log.disabled = True


def enable_logging():
    _log.disabled = False


def warnings():
    _log.setLevel(logging.WARNING)


def quiet():
    _log.setLevel(logging.ERROR)


def verbose():
    _log.setLevel(logging.INFO)


def set_verbosity_level(level):
    _log.setLevel(level)


class Parameters:
    """
    An immutable container for model parameters, frozen from a model's
    parameter dictionary by `Model.get_parameters`.  Solvers that must not see
    later changes to the model (the linearization around a steady state, for
    instance) read their settings from one of these.

    Both attribute-style and dictionary-style read access are supported.

    Parameters
    ----------
    **parameters : Any
        Any number of parameters in the form key=value.
    """

    __slots__ = ("_parameters",)

    def __init__(self, **parameters: Any) -> None:
        object.__setattr__(self, "_parameters", dict(parameters))

    def __getitem__(self, key: str) -> Any:
        if not isinstance(key, str):
            raise TypeError("Key must be a string (parameter name).")
        return self._parameters[key]

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            return object.__getattribute__(self, name)
        try:
            return self._parameters[name]
        except KeyError:
            raise AttributeError(f"'Parameters' object has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Parameters are immutable.")

    def __setitem__(self, key: str, value: Any) -> None:
        raise TypeError("Parameters are immutable.")

    def __iter__(self) -> Iterator[str]:
        return iter(self._parameters)

    def __len__(self) -> int:
        return len(self._parameters)

    def __contains__(self, item: str) -> bool:
        return item in self._parameters

    def __repr__(self) -> str:
        return f"Parameters({self._parameters})"


class Model:
    """
    A class with special handling of parameters assignment and of inputs that
    are built ("constructed") from other parameters.
    """

    def __init__(self):
        if not hasattr(self, "parameters"):
            self.parameters = {}
        if not hasattr(self, "constructors"):
            self.constructors = {}

    def assign_parameters(self, **kwds):
        """
        Assign an arbitrary number of attributes to this model.

        Parameters
        ----------
        **kwds : keyword arguments
            Any number of keyword arguments of the form key=value.
            Each value will be assigned to the attribute named in self.

        Returns
        -------
            None
        """
        self.parameters.update(kwds)
        for key in kwds:
            setattr(self, key, kwds[key])

    def get_parameters(self):
        """
        Freeze the current parameter dictionary into an immutable Parameters.
        """
        return Parameters(**self.parameters)

    def __str__(self):
        type_ = type(self)
        s = f"<{type_.__module__}.{type_.__qualname__} object at {hex(id(self))}.\n"
        s += "Parameters:"
        for p in self.parameters:
            s += f"\n{p}: {self.parameters[p]}"
        s += ">"
        return s

    def construct(self, *args):
        """
        Top-level method for building constructed inputs. If called without any
        inputs, construct builds each of the objects named in the keys of the
        constructors dictionary; it draws inputs for the constructors from the
        parameters dictionary and adds its results to the same. If passed one or
        more strings as arguments, the method builds only the named keys. The
        method will do multiple "passes" over the requested keys, as some cons-
        tructors require inputs built by other constructors.

        Parameters
        ----------
        *args : str, optional
            Keys of self.constructors that are requested to be constructed.
            If no arguments are passed, *all* elements of the dictionary are implied.

        Returns
        -------
        None
        """
        keys = list(args) if len(args) > 0 else list(self.constructors.keys())
        for key in keys:
            if key not in self.constructors:
                raise ValueError("No constructor found for " + key)

        remaining = list(keys)
        missing_key_data = []
        while remaining:
            built_this_pass = []
            missing_key_data = []
            for key in remaining:
                constructor = self.constructors[key]
                if constructor is None:
                    built_this_pass.append(key)
                    continue

                # Gather the arguments this constructor needs, by name
                has_no_default = {
                    k: v.default is inspect.Parameter.empty
                    for k, v in inspect.signature(constructor).parameters.items()
                }
                temp_dict = {}
                any_missing = False
                for this_arg in get_arg_names(constructor):
                    if this_arg in self.parameters:
                        temp_dict[this_arg] = self.parameters[this_arg]
                    elif hasattr(self, this_arg):
                        temp_dict[this_arg] = getattr(self, this_arg)
                    elif has_no_default[this_arg]:
                        any_missing = True
                        missing_key_data.append((key, this_arg))

                if any_missing:
                    continue
                temp = constructor(**temp_dict)
                setattr(self, key, temp)
                self.parameters[key] = temp
                built_this_pass.append(key)

            if not built_this_pass:
                break
            remaining = [key for key in remaining if key not in built_this_pass]

        self._missing_key_data = missing_key_data
        if remaining:
            msg = "Did not construct these objects: " + ", ".join(remaining)
            msg += " (missing: "
            msg += ", ".join(f"{arg} for {key}" for key, arg in missing_key_data)
            raise ValueError(msg + ")")


class AgentType(Model):
    """
    A superclass for households in HACT.  Subclasses describe a stationary,
    infinite-horizon problem through `solve_one_step`, which maps a guess of the
    solution into an improved guess.  `solve` iterates it until successive
    solutions are within `tolerance` of each other (by their `distance`) or
    until `max_cycles` steps have been taken, whichever comes first.

    Parameters
    ----------
    tolerance : float
        Maximum acceptable "distance" between successive solutions.
    max_cycles : int
        Hard cap on the number of improvement steps.
    construct : bool
        Indicator for whether this instance's construct() method should be run
        when initialized (default True).
    """

    default_ = {"params": {}}

    def __init__(self, tolerance=1e-8, max_cycles=500, construct=True, **kwds):
        super().__init__()
        params = deepcopy(self.default_["params"])
        params.update(kwds)
        self.constructors = params.pop("constructors", {})
        self.tolerance = tolerance
        self.max_cycles = max_cycles
        self.assign_parameters(**params)
        if construct:
            self.construct()

    def pre_solve(self):
        """
        Run immediately before solving; checks inputs by default.
        """
        self.check_restrictions()

    def check_restrictions(self):
        return

    def post_solve(self):
        return None

    def initial_guess(self, *args, **kwds):
        raise NotImplementedError()

    def solve_one_step(self, solution_last, *args, **kwds):
        raise NotImplementedError()

    def solve(self, *args, from_solution=None, presolve=True, **kwds):
        """
        Solve the stationary problem of this agent type by iterating on
        `solve_one_step`.  Extra arguments are passed through to the initial
        guess and to every step (prices, for instance).

        Parameters
        ----------
        from_solution : MetricObject, optional
            Starting point of the iteration.  If None, `initial_guess` is used.
        presolve : bool, optional
            If True (default), the pre_solve method is run before solving.

        Returns
        -------
        solution : MetricObject
            The last iterate, also stored as self.solution.
        """
        # Ignore floating point "errors"; infeasible branches are penalized
        # explicitly by the solvers.
        with np.errstate(
            divide="ignore", over="ignore", under="ignore", invalid="ignore"
        ):
            if presolve:
                self.pre_solve()
            if from_solution is None:
                solution_last = self.initial_guess(*args, **kwds)
            else:
                solution_last = from_solution

            t_start = time()
            completed_cycles = 0
            solution_distance = np.inf
            go = True
            while go:
                solution_now = self.solve_one_step(solution_last, *args, **kwds)
                solution_distance = solution_now.distance(solution_last)
                completed_cycles += 1
                solution_last = solution_now
                go = (
                    solution_distance >= self.tolerance
                    and completed_cycles < self.max_cycles
                )

            self.solution_distance = solution_distance
            self.completed_cycles = completed_cycles
            self.solution = solution_last
            _log.info(
                "%s: %d cycles in %.3f seconds, solution distance = %.3e",
                type(self).__name__,
                completed_cycles,
                time() - t_start,
                solution_distance,
            )
            if solution_distance >= self.tolerance:
                _log.warning(
                    "%s did not converge within %d cycles (distance %.3e).",
                    type(self).__name__,
                    self.max_cycles,
                    solution_distance,
                )
            self.post_solve()
        return self.solution


class Market(Model):
    """
    A superclass to represent a central clearinghouse of information.  Used to
    solve for equilibrium prices as a layer on top of the household problem(s)
    of one or more AgentTypes.

    One loop of `solve` calls, in order, `solve_agents` (households react to the
    current prices), `mill` (aggregate their behavior), `store` (record the
    variables named in track_vars) and `update_dynamics` (revise prices).  The
    loop stops when `update_dynamics` reports that markets clear or after
    `max_loops` loops.

    Parameters
    ----------
    agents : [AgentType]
        A list of all the AgentTypes in this market.
    track_vars : [string]
        Names of attributes of the Market to record once per loop.
    max_loops : int
        Hard cap on the number of outer loops.
    """

    def __init__(self, agents=None, track_vars=None, max_loops=100, **kwds):
        super().__init__()
        self.agents = agents if agents is not None else list()
        self.track_vars = track_vars if track_vars is not None else list()
        self.max_loops = max_loops
        self.history = []
        self.assign_parameters(**kwds)

    def reset(self):
        """
        Erase the history of tracked variables.
        """
        self.history = []

    def solve_agents(self):
        for this_type in self.agents:
            this_type.solve()

    def mill(self):
        raise NotImplementedError()

    def update_dynamics(self):
        raise NotImplementedError()

    def store(self):
        """
        Record the current value of each variable named in track_vars as a new
        row of self.history.
        """
        loop_data = {"loop": len(self.history)}
        for var_name in self.track_vars:
            value_now = getattr(self, var_name, None)
            if np.iscomplexobj(value_now):
                value_now = np.real(value_now)
            loop_data[var_name] = copy(value_now)
        self.history.append(loop_data)

    def solve(self):
        """
        Find equilibrium prices by looping over household solution,
        aggregation and price revision.

        Returns
        -------
        cleared : bool
            Whether markets cleared before the loop cap was hit.
        """
        self.reset()
        completed_loops = 0
        cleared = False
        go = True
        while go:
            self.solve_agents()
            self.mill()
            self.store()
            cleared = self.update_dynamics()
            completed_loops += 1
            go = not cleared and completed_loops < self.max_loops

        self.completed_loops = completed_loops
        self.cleared = cleared
        if not cleared:
            _log.warning(
                "%s: markets did not clear within %d loops; keeping the last iterate.",
                type(self).__name__,
                self.max_loops,
            )
        return cleared

    def get_history_df(self):
        """
        Converts the market's loop history into a pandas DataFrame indexed
        by loop number.

        Returns
        -------
        pandas.DataFrame
            One row per completed loop and one column per tracked variable.
        """
        if not self.history:
            return pd.DataFrame(columns=["loop"] + list(self.track_vars)).set_index(
                "loop"
            )
        return pd.DataFrame.from_records(self.history).set_index("loop")
