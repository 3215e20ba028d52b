from typing import Any, Callable

import tqdm
from joblib import Parallel, delayed


def run_parallel(
    func: Callable,
    func_params: list[Any],
    *args,
    n_jobs: int = -1,
    backend: str = "threading",
    verbose: bool = True,
    **kwargs,
) -> list[Any]:
    """Runs a function for a list of parameters in parallel.

    Args:
        func (Callable): function to run in parallel.
        func_params (list[any]): parameters for the function
        n_jobs (int, optional): Number of joblib workers. Defaults to -1.
        backend (str, optional): joblib backend. Valid options are
        `loky`,`threading`, `multiprocessing` or `sequential`.  Defaults to "threading".
        verbose (bool, optional): Show the task progress using tqdm. Defaults to True.

    Returns:
        list[any]: Function output, in the order of ``func_params``.
    """
    if verbose:
        func_params = tqdm.tqdm(func_params)

    return Parallel(n_jobs=n_jobs, backend=backend)(
        delayed(func)(fp, *args, **kwargs) for fp in func_params
    )


def humanize_size(size: int, unit: str = "MB") -> float:
    """Convert bytes to human-readable size in specified unit.

    Args:
        size: Size in bytes.
        unit: Target unit for conversion ('B', 'KB', 'MB', 'GB', 'TB', 'PB').

    Returns:
        Size converted to the specified unit, rounded to 1 decimal place.

    Raises:
        ValueError: If size is negative or unit is invalid.
    """
    if size < 0:
        raise ValueError("size must be a non-negative integer")

    valid_units = ["b", "kb", "mb", "gb", "tb", "pb"]
    unit = unit.lower()
    if unit not in valid_units:
        raise ValueError(f"unit must be one of {valid_units}")

    return round(size / 1024 ** valid_units.index(unit), 1)
