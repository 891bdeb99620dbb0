"""Redundancy search over the free joint of the analytic seven-joint solver."""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Sequence
from enum import Enum

import numpy as np

from armik7.arm_ik import NUM_JOINTS_ARM7DOF, PR2ArmIK
from armik7.chain import KinematicSolverInfo, RobotModel

_MAX_DISTANCE = 1e6


class ErrorCode(Enum):
    """Outcome of an inverse kinematics request."""

    SUCCESS = "success"
    NO_IK_SOLUTION = "no_ik_solution"
    TIMED_OUT = "timed_out"


class IKSearchError(RuntimeError):
    """A search over the free angle ended without an accepted solution."""

    def __init__(self, error_code: ErrorCode, message: str | None = None) -> None:
        super().__init__(message or f"inverse kinematics failed: {error_code.value}")
        self.error_code = error_code


SolutionCallback = Callable[[np.ndarray, list[float]], ErrorCode]


def next_count(count: int, max_count: int, min_count: int) -> int | None:
    """Next search index, alternating sides of zero; None when both sides are used up."""
    if count > 0:
        if -count >= min_count:
            return -count
        if count + 1 <= max_count:
            return count + 1
        return None
    if 1 - count <= max_count:
        return 1 - count
    if count - 1 >= min_count:
        return count - 1
    return None


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance between two joint vectors of equal length."""
    if len(a) != len(b):
        raise ValueError(f"vectors differ in length: {len(a)} and {len(b)}")
    return math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))


class PR2ArmIKSolver:
    """Picks solutions of the analytic solver and searches the free angle."""

    def __init__(
        self,
        robot_model: RobotModel,
        root_frame_name: str,
        tip_frame_name: str,
        search_discretization_angle: float,
        free_angle: int,
    ) -> None:
        self._ik = PR2ArmIK(robot_model, root_frame_name, tip_frame_name)
        self.root_frame_name = root_frame_name
        self.search_discretization_angle = search_discretization_angle
        self.free_angle = free_angle
        self._limits = self._ik.solver_info().limits

    def solver_info(self) -> KinematicSolverInfo:
        """Joint names, limits and link names of the chain, root to tip."""
        return self._ik.solver_info()

    def frame_id(self) -> str:
        """Name of the frame poses are expressed in."""
        return self.root_frame_name

    def _solve(self, q_init: Sequence[float], pose) -> list[list[float]]:
        if self.free_angle == 0:
            return self._ik.compute_ik_shoulder_pan(pose, q_init[0])
        return self._ik.compute_ik_shoulder_roll(pose, q_init[2])

    def cart_to_jnt(self, q_init: Sequence[float], pose) -> list[float] | None:
        """The solution closest to q_init with the free joint at its q_init value."""
        best = None
        best_distance = _MAX_DISTANCE
        for solution in self._solve(q_init, pose):
            distance = euclidean_distance(solution, q_init)
            if distance < best_distance:
                best_distance = distance
                best = solution
        return list(best) if best is not None else None

    def cart_to_jnt_all(self, q_init: Sequence[float], pose) -> list[list[float]]:
        """Every solution with the free joint at its q_init value."""
        return [list(s[:NUM_JOINTS_ARM7DOF]) for s in self._solve(q_init, pose)]

    def _search(self, q_in, timeout, min_limit, max_limit, attempt):
        q_init = [float(v) for v in q_in]
        initial_guess = q_init[self.free_angle]
        step = self.search_discretization_angle
        num_positive = int((max_limit - initial_guess) / step)
        num_negative = int((initial_guess - min_limit) / step)

        start = time.monotonic()
        elapsed = 0.0
        count = 0
        while elapsed < timeout:
            result = attempt(q_init)
            if result is not None:
                return result
            following = next_count(count, num_positive, -num_negative)
            if following is None:
                raise IKSearchError(ErrorCode.NO_IK_SOLUTION)
            count = following
            q_init[self.free_angle] = initial_guess + step * count
            elapsed = time.monotonic() - start
        raise IKSearchError(
            ErrorCode.TIMED_OUT, f"inverse kinematics timed out after {timeout} s"
        )

    def search_all(self, q_in: Sequence[float], pose, timeout: float) -> list[list[float]]:
        """Step the free angle out from q_in until some solutions appear."""
        limit = self._limits[self.free_angle]
        return self._search(
            q_in,
            timeout,
            limit.min_position,
            limit.max_position,
            lambda q: self.cart_to_jnt_all(q, pose) or None,
        )

    def search(
        self,
        q_in: Sequence[float],
        pose,
        timeout: float,
        consistency_limit: float | None = None,
        solution_callback: SolutionCallback | None = None,
    ) -> list[float]:
        """Step the free angle out from q_in until a solution is accepted.

        With a consistency limit the free angle stays within that distance of
        its value in q_in.  A callback receives the pose and each candidate and
        accepts it by returning ErrorCode.SUCCESS.
        """
        limit = self._limits[self.free_angle]
        initial_guess = float(q_in[self.free_angle])
        if consistency_limit is not None:
            max_limit = min(limit.max_position, initial_guess + consistency_limit)
            min_limit = max(limit.min_position, initial_guess - consistency_limit)
        else:
            max_limit = limit.max_position
            min_limit = limit.min_position
        pose_matrix = np.array(pose, dtype=float)

        def attempt(q_init):
            solution = self.cart_to_jnt(q_init, pose_matrix)
            if solution is None:
                return None
            if solution_callback is None:
                return solution
            if solution_callback(pose_matrix, list(solution)) is ErrorCode.SUCCESS:
                return solution
            return None

        return self._search(q_in, timeout, min_limit, max_limit, attempt)