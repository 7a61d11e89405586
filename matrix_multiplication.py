"""Sequential, thread-pool and thread-partitioned matrix multiplication."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from dense_matrix import Matrix


class MatrixMultiplicationError(Exception):
    """Base class for multiplication failures."""


class DimensionMismatchError(MatrixMultiplicationError, ValueError):
    """Raised when the left operand's column count differs from the right's row count."""

    def __init__(self, a_shape: Tuple[int, int], b_shape: Tuple[int, int]):
        super().__init__(f"Matrix dimensions do not match: {a_shape} and {b_shape}")
        self.a_shape = a_shape
        self.b_shape = b_shape


class InvalidWorkItemError(MatrixMultiplicationError, ValueError):
    """Raised when a worker is dispatched without a usable assignment."""


def setup_logging(log_level_str: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure logging with the specified log level.

    Parameters
    ----------
    log_level_str : str
        String representation of the log level (e.g., 'INFO', 'DEBUG')
    log_file : Optional[str]
        Path of an additional log file; only the console is used when omitted
    """
    log_levels = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    log_level = log_levels.get(log_level_str.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - [%(funcName)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    logging.info(f"Logging initialized at level: {log_level_str}")


def _check_dimensions(a: Matrix, b: Matrix) -> None:
    if a.cols != b.rows:
        raise DimensionMismatchError(a.shape, b.shape)


def _check_parallelism(value: int, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")


def _compute_rows(a: Matrix, b: Matrix, result: Matrix, start_row: int, end_row: int) -> None:
    """Write ``result[i, j]`` for every row ``i`` in ``[start_row, end_row)``.

    Each cell is a single dot product accumulated in increasing ``k`` order,
    so every strategy built on this kernel yields bit-identical values.
    """
    for i in range(start_row, end_row):
        for j in range(b.cols):
            total = 0.0
            for k in range(a.cols):
                total += a[i, k] * b[k, j]
            result[i, j] = total


def multiply_sequential(a: Matrix, b: Matrix) -> Matrix:
    """Reference triple-loop multiplication.

    Parameters
    ----------
    a : Matrix
        Left operand
    b : Matrix
        Right operand

    Returns
    -------
    Matrix
        New matrix of shape ``(a.rows, b.cols)``

    Raises
    ------
    DimensionMismatchError
        If ``a.cols != b.rows``
    """
    _check_dimensions(a, b)

    result = Matrix(a.rows, b.cols)
    _compute_rows(a, b, result, 0, a.rows)
    return result


def multiply_pooled(a: Matrix, b: Matrix, max_parallelism: int) -> Matrix:
    """Multiply with one work item per output row on a bounded thread pool.

    The pool never runs more than ``max_parallelism`` rows at once. The call
    returns only after every row has been computed, and a failure in any row
    is re-raised here.
    """
    _check_dimensions(a, b)
    _check_parallelism(max_parallelism, "max_parallelism")

    result = Matrix(a.rows, b.cols)
    logging.debug(f"Dispatching {a.rows} rows to a pool of {max_parallelism} workers")

    try:
        with ThreadPoolExecutor(max_workers=max_parallelism) as executor:
            futures = [
                executor.submit(_compute_rows, a, b, result, row, row + 1)
                for row in range(a.rows)
            ]
            for future in futures:
                future.result()
    except Exception as e:
        logging.error(f"Error in multiply_pooled: {e}")
        raise

    return result


# --- Explicit thread partitioning ---
@dataclass
class WorkAssignment:
    """Row band handed to one worker thread.

    Attributes
    ----------
    a : Optional[Matrix]
        Left operand, read only
    b : Optional[Matrix]
        Right operand, read only
    result : Optional[Matrix]
        Output matrix; the worker writes rows ``[start_row, end_row)`` only
    start_row : int
        First row of the band (inclusive)
    end_row : int
        End of the band (exclusive)
    """

    a: Optional[Matrix]
    b: Optional[Matrix]
    result: Optional[Matrix]
    start_row: int
    end_row: int


def partition_rows(total_rows: int, num_threads: int) -> List[Tuple[int, int]]:
    """Split ``[0, total_rows)`` into ``num_threads`` contiguous bands.

    Every band but the last holds ``total_rows // num_threads`` rows; the
    last one also takes the remainder. With more threads than rows the
    leading bands are empty and the last band holds every row.

    Parameters
    ----------
    total_rows : int
        Number of rows to distribute
    num_threads : int
        Number of bands to produce

    Returns
    -------
    List[Tuple[int, int]]
        Half-open ``(start, end)`` ranges in row order
    """
    _check_parallelism(num_threads, "num_threads")
    if total_rows < 0:
        raise ValueError(f"total_rows must be non-negative, got {total_rows}")

    rows_per_thread = total_rows // num_threads
    bands = []
    for i in range(num_threads):
        start_row = i * rows_per_thread
        end_row = total_rows if i == num_threads - 1 else (i + 1) * rows_per_thread
        bands.append((start_row, end_row))
    return bands


def multiply_partial(assignment: Optional[WorkAssignment]) -> None:
    """Compute the rows of one assignment into its result matrix."""
    if assignment is None:
        raise InvalidWorkItemError("Worker started without an assignment")
    if assignment.a is None or assignment.b is None or assignment.result is None:
        raise InvalidWorkItemError(
            f"Assignment for rows [{assignment.start_row}, {assignment.end_row}) "
            "is missing a matrix"
        )
    if not 0 <= assignment.start_row <= assignment.end_row <= assignment.result.rows:
        raise InvalidWorkItemError(
            f"Row band [{assignment.start_row}, {assignment.end_row}) is outside "
            f"a result with {assignment.result.rows} rows"
        )

    _compute_rows(
        assignment.a, assignment.b, assignment.result,
        assignment.start_row, assignment.end_row,
    )


class PartitionWorker(threading.Thread):
    """Thread that runs one assignment and keeps any exception it raised."""

    def __init__(self, assignment: Optional[WorkAssignment], name: Optional[str] = None):
        super().__init__(name=name)
        self.assignment = assignment
        self.error: Optional[BaseException] = None

    def run(self) -> None:
        try:
            multiply_partial(self.assignment)
        except Exception as e:
            # re-raised by execute_assignments once every worker is joined
            self.error = e


def execute_assignments(assignments: Sequence[Optional[WorkAssignment]]) -> None:
    """Run each assignment on its own thread and wait for all of them.

    All threads are started before the first join. After the last join the
    first worker failure, if any, is raised to the caller.
    """
    workers = [
        PartitionWorker(assignment, name=f"matmul-worker-{i + 1}")
        for i, assignment in enumerate(assignments)
    ]

    for worker in workers:
        worker.start()

    for worker in workers:
        worker.join()

    failed = [worker for worker in workers if worker.error is not None]
    if failed:
        first = failed[0]
        logging.error(
            f"{len(failed)} of {len(workers)} workers failed; "
            f"{first.name}: {first.error}"
        )
        raise first.error


def multiply_threaded(a: Matrix, b: Matrix, num_threads: int) -> Matrix:
    """Multiply with exactly ``num_threads`` explicitly managed worker threads.

    Parameters
    ----------
    a : Matrix
        Left operand
    b : Matrix
        Right operand
    num_threads : int
        Number of row bands, and therefore of threads, to create

    Returns
    -------
    Matrix
        New matrix of shape ``(a.rows, b.cols)``

    Raises
    ------
    DimensionMismatchError
        If ``a.cols != b.rows``
    ValueError
        If ``num_threads`` is not a positive integer
    """
    _check_dimensions(a, b)
    _check_parallelism(num_threads, "num_threads")

    result = Matrix(a.rows, b.cols)
    bands = partition_rows(a.rows, num_threads)
    logging.debug(f"Partitioned {a.rows} rows into bands {bands}")

    execute_assignments(
        [WorkAssignment(a, b, result, start_row, end_row) for start_row, end_row in bands]
    )
    return result
