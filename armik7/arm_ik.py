"""Closed-form inverse kinematics for a seven-joint arm with one free angle.

The arm is expected to be a shoulder pan, shoulder lift, upper-arm roll,
elbow flex, forearm roll, wrist flex and wrist roll, in that order from
root to tip.  One of the joints (shoulder pan or upper-arm roll) is held
fixed and the remaining six are solved for analytically.
"""

from __future__ import annotations

import copy
import logging
import math
from collections.abc import Sequence

import numpy as np

from armik7.chain import (
    Joint,
    JointLimit,
    JointType,
    KinematicSolverInfo,
    RobotModel,
    normalize_angle,
)

log = logging.getLogger(__name__)

IK_EPS = 1e-5
NUM_JOINTS_ARM7DOF = 7


class ChainError(ValueError):
    """The robot model does not describe a usable seven-joint chain."""


def _acos(value: float) -> float:
    """Arc cosine that yields NaN outside [-1, 1] instead of raising."""
    if -1.0 <= value <= 1.0:
        return math.acos(value)
    return math.nan


def solve_cosine_equation(a: float, b: float, c: float) -> tuple[float, float] | None:
    """Solve a*cos(t) + b*sin(t) = c for t; None if there is no solution."""
    theta = math.atan2(b, a)
    denom = math.hypot(a, b)
    if abs(denom) < IK_EPS:
        return None
    ratio = c / denom
    if ratio < -1.0 or ratio > 1.0:
        return None
    term = math.acos(ratio)
    return theta + term, theta - term


def solve_quadratic(a: float, b: float, c: float) -> tuple[float, float] | None:
    """Real roots of a*x^2 + b*x + c = 0, or None when there are none."""
    discriminant = b * b - 4.0 * a * c
    if abs(a) < IK_EPS:
        if b == 0.0:
            return None
        root = -c / b
        return root, root
    if discriminant >= 0.0:
        sq = math.sqrt(discriminant)
        return (-b + sq) / (2.0 * a), (-b - sq) / (2.0 * a)
    if abs(discriminant) < IK_EPS:
        root = -b / (2.0 * a)
        return root, root
    return None


def _position_limits(joint: Joint) -> tuple[float, float] | None:
    """Soft limits if present, else hard limits, else None."""
    if joint.safety is not None:
        return joint.safety.soft_lower_limit, joint.safety.soft_upper_limit
    if joint.limits is not None:
        return joint.limits.lower, joint.limits.upper
    return None


def _chain_limit(joint: Joint) -> JointLimit:
    """Limit record describing one joint for the solver information."""
    limit = JointLimit(joint_name=joint.name)
    if joint.type is JointType.CONTINUOUS:
        limit.min_position = -math.pi
        limit.max_position = math.pi
        limit.has_position_limits = False
    else:
        bounds = _position_limits(joint)
        if bounds is not None:
            limit.min_position, limit.max_position = bounds
            limit.has_position_limits = True
    if joint.limits is not None:
        limit.max_velocity = joint.limits.velocity
        limit.has_velocity_limits = True
    return limit


def _wrist_rotation(gf: np.ndarray, c1: float, s1: float, c2: float, s2: float,
                    c3: float, s3: float, c4: float, s4: float) -> np.ndarray:
    """Rotation left for the three wrist joints once the first four are fixed."""
    r0, r1, r2 = gf[0, :3], gf[1, :3], gf[2, :3]
    a = r0 * c1 * c2 + r1 * c2 * s1 - r2 * s2
    b = r2 * c2 * c3 + c3 * (r0 * c1 + r1 * s1) * s2 + (r0 * s1 - r1 * c1) * s3
    c = c3 * (r1 * c1 - r0 * s1) + r2 * c2 * s3 + (r0 * c1 + r1 * s1) * s2 * s3
    return np.vstack((c4 * a - b * s4, c, c4 * b + a * s4))


class PR2ArmIK:
    """Analytic inverse kinematics for the chain from root_name to tip_name."""

    def __init__(self, robot_model: RobotModel, root_name: str, tip_name: str) -> None:
        self.root_name = root_name
        self.tip_name = tip_name
        offsets = []
        multipliers: list[float] = []
        min_angles: list[float] = []
        max_angles: list[float] = []
        continuous: list[bool] = []
        info = KinematicSolverInfo()

        link = robot_model.get_link(tip_name)
        while link is not None and len(offsets) < NUM_JOINTS_ARM7DOF:
            parent = link.parent_joint
            joint = robot_model.get_joint(parent.name) if parent is not None else None
            if joint is None:
                if parent is not None:
                    raise ChainError(f"could not find joint: {parent.name}")
                raise ChainError(f"link {link.name} has no parent joint")
            if joint.type not in (JointType.UNKNOWN, JointType.FIXED):
                offsets.append(joint.origin)
                multipliers.append(sum(c * abs(c) for c in joint.axis))
                if joint.type is JointType.CONTINUOUS:
                    min_angles.append(-math.pi)
                    max_angles.append(math.pi)
                    continuous.append(True)
                else:
                    bounds = _position_limits(joint)
                    if bounds is None:
                        log.warning("no joint limits for joint '%s'", joint.name)
                        bounds = (0.0, 0.0)
                    min_angles.append(bounds[0])
                    max_angles.append(bounds[1])
                    continuous.append(False)
                info.joint_names.append(joint.name)
                info.limits.append(_chain_limit(joint))
            link = robot_model.get_link(link.parent_link())

        info.link_names.append(tip_name)
        if len(offsets) != NUM_JOINTS_ARM7DOF:
            raise ChainError(
                f"chain from {root_name} to {tip_name} does not have "
                f"{NUM_JOINTS_ARM7DOF} joints"
            )

        # Collected tip to root; everything else expects root to tip.
        offsets.reverse()
        multipliers.reverse()
        min_angles.reverse()
        max_angles.reverse()
        continuous.reverse()
        info.joint_names.reverse()
        info.limits.reverse()

        self.angle_multipliers = multipliers
        self.min_angles = min_angles
        self.max_angles = max_angles
        self.continuous_joints = continuous
        self._info = info

        self.torso_shoulder_offset = tuple(float(v) for v in offsets[0].position)
        self.shoulder_upperarm_offset = offsets[1].distance()
        self.upperarm_elbow_offset = offsets[3].distance()
        self.elbow_wrist_offset = offsets[5].distance()
        self.shoulder_elbow_offset = self.shoulder_upperarm_offset + self.upperarm_elbow_offset
        self.shoulder_wrist_offset = self.shoulder_elbow_offset + self.elbow_wrist_offset

        home = np.identity(4)
        home[0, 3] = self.shoulder_wrist_offset
        self.home = home
        self.home_inv = np.linalg.inv(home)

    def solver_info(self) -> KinematicSolverInfo:
        """Joint names, limits and link names of the chain, root to tip."""
        return copy.deepcopy(self._info)

    def _arm_frame(self, pose) -> tuple[np.ndarray, np.ndarray]:
        g = np.array(pose, dtype=float)
        if g.shape != (4, 4):
            raise ValueError(f"pose must be a 4x4 matrix, got shape {g.shape}")
        g[:3, 3] -= self.torso_shoulder_offset
        return g, g @ self.home_inv

    def check_joint_limit(self, joint_value: float, joint_num: int) -> bool:
        """Whether one joint value lies inside that joint's limits."""
        scaled = joint_value * self.angle_multipliers[joint_num]
        if self.continuous_joints[joint_num] or joint_num != 2:
            scaled = normalize_angle(scaled)
        return self.min_angles[joint_num] <= scaled <= self.max_angles[joint_num]

    def check_joint_limits(self, joint_values: Sequence[float]) -> bool:
        """Whether every one of the seven joint values lies inside its limits."""
        return all(
            self.check_joint_limit(normalize_angle(value * multiplier), index)
            for index, (value, multiplier) in enumerate(
                zip(joint_values[:NUM_JOINTS_ARM7DOF], self.angle_multipliers)
            )
        )

    def compute_ik_shoulder_pan(self, pose, t1: float) -> list[list[float]]:
        """All solutions reaching pose with the shoulder pan held at t1."""
        g, gf = self._arm_frame(pose)
        solutions: list[list[float]] = []
        su = self.shoulder_upperarm_offset
        se = self.shoulder_elbow_offset
        sw = self.shoulder_wrist_offset
        m = self.angle_multipliers

        t1 = normalize_angle(t1)
        if not self.check_joint_limit(t1, 0):
            return solutions
        c1, s1 = math.cos(t1), math.sin(t1)
        x, y, z = (float(v) for v in g[:3, 3])

        dx = x - su * c1
        dy = y - su * s1
        dz = z
        dd = dx * dx + dy * dy + dz * dz
        numerator = dd - su * su + 2 * su * se - 2 * se * se + 2 * se * sw - sw * sw
        denominator = 2 * (su - se) * (se - sw)
        acos_term = numerator / denominator
        if acos_term > 1.0 or acos_term < -1.0:
            return solutions
        acos_angle = math.acos(acos_term)

        for t4 in (acos_angle, -acos_angle):
            c4, s4 = math.cos(t4), math.sin(t4)
            if math.isnan(t4) or not self.check_joint_limit(t4, 3):
                continue
            theta2 = solve_cosine_equation(
                x * c1 + y * s1 - su, -z, -su + se + (sw - se) * c4
            )
            if theta2 is None:
                continue
            for t2 in theta2:
                if not self.check_joint_limit(t2, 1):
                    continue
                s2, c2 = math.sin(t2), math.cos(t2)
                theta3 = solve_cosine_equation(
                    s1 * (se - sw) * s2 * s4,
                    (sw - se) * c1 * s4,
                    y - (su + c2 * (-su + se + (sw - se) * c4)) * s1,
                )
                if theta3 is None:
                    continue
                for t3 in theta3:
                    if not self.check_joint_limit(normalize_angle(t3), 2):
                        continue
                    s3, c3 = math.sin(t3), math.cos(t3)
                    z_err = (su - se + (se - sw) * c4) * s2 + (se - sw) * c2 * c3 * s4 - z
                    if abs(z_err) > IK_EPS:
                        continue
                    x_err = ((se - sw) * s1 * s3 * s4
                             + c1 * (su + c2 * (-su + se + (sw - se) * c4)
                                     + (se - sw) * c3 * s2 * s4) - x)
                    if abs(x_err) > IK_EPS:
                        continue
                    grhs = _wrist_rotation(gf, c1, s1, c2, s2, c3, s3, c4, s4)
                    val1 = math.hypot(grhs[0, 1], grhs[0, 2])
                    val2 = grhs[0, 0]
                    for t6 in (math.atan2(val1, val2), math.atan2(-val1, val2)):
                        if not self.check_joint_limit(normalize_angle(t6), 5):
                            continue
                        if abs(math.cos(t6) - grhs[0, 0]) > IK_EPS:
                            continue
                        if abs(math.sin(t6)) < IK_EPS:
                            t5a = _acos(grhs[1, 1]) / 2.0
                            t7a = t5a
                            t7b = math.pi + t7a
                            t5b = t7b
                        else:
                            t7a = math.atan2(grhs[0, 1], grhs[0, 2])
                            t5a = math.atan2(grhs[1, 0], -grhs[2, 0])
                            t7b = math.pi + t7a
                            t5b = math.pi + t5a
                        for t5, t7 in ((t5a, t7a), (t5b, t7b)):
                            if not self.check_joint_limit(t5, 4):
                                continue
                            if not self.check_joint_limit(t7, 6):
                                continue
                            if (abs(math.sin(t6) * math.sin(t7) - grhs[0, 1]) > IK_EPS
                                    or abs(math.cos(t7) * math.sin(t6) - grhs[0, 2]) > IK_EPS):
                                continue
                            angles = (t1, t2, t3, t4, t5, t6, t7)
                            solutions.append(
                                [normalize_angle(a) * k for a, k in zip(angles, m)]
                            )
        return solutions

    def compute_ik_shoulder_roll(self, pose, t3: float) -> list[list[float]]:
        """All solutions reaching pose with the upper-arm roll held at t3."""
        g, gf = self._arm_frame(pose)
        solutions: list[list[float]] = []
        su = self.shoulder_upperarm_offset
        ue = self.upperarm_elbow_offset
        ew = self.elbow_wrist_offset
        se = self.shoulder_elbow_offset
        sw = self.shoulder_wrist_offset
        m = self.angle_multipliers

        if not self.check_joint_limit(t3, 2):
            return solutions
        x, y, z = (float(v) for v in g[:3, 3])
        c3, s3 = math.cos(t3), math.sin(t3)

        k0 = -math.sin(-t3) * ew
        k1 = -math.cos(-t3) * ew
        d0 = 4 * su * su * (ue * ue + k1 * k1 - z * z)
        d1 = 8 * su * su * ue * ew
        d2 = 4 * su * su * (ew * ew - k1 * k1)
        b0 = x * x + y * y + z * z - su * su - ue * ue - k0 * k0 - k1 * k1
        b1 = -2 * ue * ew

        roots = solve_quadratic(b1 * b1 - d2, 2 * b0 * b1 - d1, b0 * b0 - d0)
        if roots is None:
            return solutions
        a0, a1 = _acos(roots[0]), _acos(roots[1])

        for t4 in (a0, -a0, a1, -a1):
            if not self.check_joint_limit(t4, 3):
                continue
            if math.isnan(t4):
                continue
            c4, s4 = math.cos(t4), math.sin(t4)
            theta2 = solve_cosine_equation(
                c3 * s4 * (se - sw), su - se + (se - sw) * c4, z
            )
            if theta2 is None:
                continue
            for t2 in theta2:
                if not self.check_joint_limit(t2, 1):
                    continue
                s2, c2 = math.sin(t2), math.cos(t2)
                theta1 = solve_cosine_equation(-y, x, (se - sw) * s3 * s4)
                if theta1 is None:
                    continue
                for t1 in theta1:
                    if not self.check_joint_limit(t1, 0):
                        continue
                    s1, c1 = math.sin(t1), math.cos(t1)
                    reach = su + c2 * (-su + se + (sw - se) * c4) + (se - sw) * c3 * s2 * s4
                    z_err = (su - se + (se - sw) * c4) * s2 + (se - sw) * c2 * c3 * s4 - z
                    if abs(z_err) > IK_EPS:
                        continue
                    x_err = (se - sw) * s1 * s3 * s4 + c1 * reach - x
                    if abs(x_err) > IK_EPS:
                        continue
                    y_err = -(se - sw) * c1 * s3 * s4 + s1 * reach - y
                    if abs(y_err) > IK_EPS:
                        continue
                    grhs = _wrist_rotation(gf, c1, s1, c2, s2, c3, s3, c4, s4)
                    val1 = math.hypot(grhs[0, 1], grhs[0, 2])
                    val2 = grhs[0, 0]
                    for t6 in (math.atan2(val1, val2), math.atan2(-val1, val2)):
                        if not self.check_joint_limit(t6, 5):
                            continue
                        if abs(math.cos(t6) - grhs[0, 0]) > IK_EPS:
                            continue
                        s6 = math.sin(t6)
                        if abs(s6) < IK_EPS:
                            t5 = _acos(grhs[1, 1]) / 2.0
                            t7 = t5
                        else:
                            t7 = math.atan2(grhs[0, 1] / s6, grhs[0, 2] / s6)
                            t5 = math.atan2(grhs[1, 0] / s6, -grhs[2, 0] / s6)
                        if not self.check_joint_limit(t5, 4):
                            continue
                        if not self.check_joint_limit(t7, 6):
                            continue
                        solutions.append([
                            normalize_angle(t1 * m[0]),
                            normalize_angle(t2 * m[1]),
                            t3 * m[2],
                            normalize_angle(t4 * m[3]),
                            normalize_angle(t5 * m[4]),
                            normalize_angle(t6 * m[5]),
                            normalize_angle(t7 * m[6]),
                        ])
        return solutions