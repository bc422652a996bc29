from warnings import warn

import numpy as np
from scipy.sparse import issparse


def distance_lists(list_a, list_b):
    """
    If both inputs are lists, then the distance between
    them is the maximum distance between corresponding
    elements in the lists.  If they differ in length,
    the distance is the difference in lengths.
    """
    len_a = len(list_a)
    len_b = len(list_b)
    if len_a == len_b:
        if len_a == 0:
            return 0.0
        return np.max([distance_metric(list_a[n], list_b[n]) for n in range(len_a)])
    warn("Objects of different lengths. Returning difference in lengths.")
    return np.abs(len_a - len_b)


def distance_dicts(dict_a, dict_b):
    """
    If both inputs are dictionaries, the distance is the largest distance
    between values sharing a key.  Mismatched keys give a large distance.
    """
    if set(dict_a.keys()) != set(dict_b.keys()):
        warn("Dictionaries with keys that do not match are being compared.")
        return 1000.0
    if len(dict_a) == 0:
        return 0.0
    return np.max([distance_metric(dict_a[key], dict_b[key]) for key in dict_a])


def distance_arrays(arr_a, arr_b):
    """
    Maximum absolute difference between corresponding elements.  Complex
    entries are compared by modulus of their difference, so a complex-step
    perturbation that only moves the imaginary part still registers.
    Arrays of different shapes return the difference in their sizes.
    """
    if arr_a.shape == arr_b.shape:
        if arr_a.size == 0:
            return 0.0
        return float(np.max(np.abs(arr_a - arr_b)))
    warn("Arrays of different shapes. Returning differences in size.")
    return np.abs(arr_a.size - arr_b.size)


def distance_metric(thing_a, thing_b):
    """
    A "universal distance" metric that can be used as a default in many settings.

    Parameters
    ----------
    thing_a : object
        A generic object.
    thing_b : object
        Another generic object.

    Returns:
    ------------
    distance : float
        The "distance" between thing_a and thing_b.
    """
    if isinstance(thing_a, (int, float, complex, np.number)) and isinstance(
        thing_b, (int, float, complex, np.number)
    ):
        return float(np.abs(thing_a - thing_b))

    if issparse(thing_a) and issparse(thing_b):
        return distance_arrays(thing_a.toarray(), thing_b.toarray())

    if isinstance(thing_a, np.ndarray) and isinstance(thing_b, np.ndarray):
        return distance_arrays(thing_a, thing_b)

    if isinstance(thing_a, list) and isinstance(thing_b, list):
        return distance_lists(thing_a, thing_b)

    if isinstance(thing_a, dict) and isinstance(thing_b, dict):
        return distance_dicts(thing_a, thing_b)

    if isinstance(thing_a, MetricObject) and isinstance(thing_a, type(thing_b)):
        return thing_a.distance(thing_b)

    # Failsafe: the inputs are very far apart
    warn("Cannot compare these objects. Returning large distance.")
    return 1000.0


class MetricObject:
    """
    A superclass for solution objects in HACT.  Its distance method compares
    the attributes named in distance_criteria and returns the largest of the
    individual distances.
    """

    distance_criteria = []  # This should be overwritten by subclasses.

    def distance(self, other):
        """
        A generic distance method.

        Parameters
        ----------
        other : object
            Another object to compare this instance to.

        Returns
        -------
        (unnamed) : float
            The distance between this object and another.
        """
        if not self.distance_criteria:
            warn("No distance criteria specified. Returning large distance.")
            return 1000.0
        try:
            return np.max(
                [
                    distance_metric(getattr(self, attr_name), getattr(other, attr_name))
                    for attr_name in self.distance_criteria
                ]
            )
        except AttributeError as e:
            warn(f"Error during distance calculation: {e}. Returning large distance.")
            return float("inf")
