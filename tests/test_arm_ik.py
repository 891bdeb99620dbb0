import math

import numpy as np
import pytest

from armik7.arm_ik import (
    ChainError,
    PR2ArmIK,
    solve_cosine_equation,
    solve_quadratic,
)
from armik7.chain import (
    Joint,
    JointType,
    Limits,
    Link,
    Pose,
    RobotModel,
    SafetyLimits,
    normalize_angle,
)

IK_NEAR = 1e-4

X = (1.0, 0.0, 0.0)
Y = (0.0, 1.0, 0.0)
Z = (0.0, 0.0, 1.0)

JOINT_SPECS = [
    # name, type, parent, child, axis, origin, soft limits
    ("r_shoulder_pan_joint", JointType.REVOLUTE, "torso_lift_link",
     "r_shoulder_pan_link", Z, (0.0, -0.188, 0.0), (-2.1354, 0.5646)),
    ("r_shoulder_lift_joint", JointType.REVOLUTE, "r_shoulder_pan_link",
     "r_shoulder_lift_link", Y, (0.1, 0.0, 0.0), (-0.3536, 1.2963)),
    ("r_upper_arm_roll_joint", JointType.REVOLUTE, "r_shoulder_lift_link",
     "r_upper_arm_roll_link", X, (0.0, 0.0, 0.0), (-3.75, 0.65)),
    ("r_upper_arm_joint", JointType.FIXED, "r_upper_arm_roll_link",
     "r_upper_arm_link", X, (0.0, 0.0, 0.0), None),
    ("r_elbow_flex_joint", JointType.REVOLUTE, "r_upper_arm_link",
     "r_elbow_flex_link", Y, (0.4, 0.0, 0.0), (-2.1213, -0.15)),
    ("r_forearm_roll_joint", JointType.CONTINUOUS, "r_elbow_flex_link",
     "r_forearm_roll_link", X, (0.0, 0.0, 0.0), None),
    ("r_wrist_flex_joint", JointType.REVOLUTE, "r_forearm_roll_link",
     "r_wrist_flex_link", Y, (0.321, 0.0, 0.0), (-2.0, -0.1)),
    ("r_wrist_roll_joint", JointType.CONTINUOUS, "r_wrist_flex_link",
     "r_wrist_roll_link", X, (0.0, 0.0, 0.0), None),
]


def build_model(specs=JOINT_SPECS):
    model = RobotModel()
    model.add_link(Link("torso_lift_link"))
    for name, jtype, parent, child, axis, origin, soft in specs:
        model.add_link(Link(child))
        joint = Joint(
            name=name,
            type=jtype,
            parent_link_name=parent,
            child_link_name=child,
            axis=axis,
            origin=Pose(position=origin),
            limits=Limits(lower=-4.0, upper=4.0, effort=30.0, velocity=2.0)
            if jtype is JointType.REVOLUTE else None,
            safety=SafetyLimits(soft_lower_limit=soft[0], soft_upper_limit=soft[1])
            if soft else None,
        )
        model.add_joint(joint)
    return model


def _trans(x, y, z):
    m = np.identity(4)
    m[:3, 3] = (x, y, z)
    return m


def _rot(axis, angle):
    c, s = math.cos(angle), math.sin(angle)
    m = np.identity(4)
    if axis == "x":
        m[1:3, 1:3] = [[c, -s], [s, c]]
    elif axis == "y":
        m[0, 0], m[0, 2], m[2, 0], m[2, 2] = c, s, -s, c
    else:
        m[0:2, 0:2] = [[c, -s], [s, c]]
    return m


def forward(q):
    return (_trans(0.0, -0.188, 0.0) @ _rot("z", q[0]) @ _trans(0.1, 0.0, 0.0)
            @ _rot("y", q[1]) @ _rot("x", q[2]) @ _trans(0.4, 0.0, 0.0)
            @ _rot("y", q[3]) @ _rot("x", q[4]) @ _trans(0.321, 0.0, 0.0)
            @ _rot("y", q[5]) @ _rot("x", q[6]))


CONFIGS = [
    [-0.3, 0.4, -0.5, -1.2, 0.7, -0.9, 0.3],
    [0.2, 0.1, -1.5, -0.6, -1.1, -1.3, 2.0],
    [-1.0, 0.8, -2.2, -1.7, 2.5, -0.5, -2.4],
]


@pytest.fixture
def ik():
    return PR2ArmIK(build_model(), "torso_lift_link", "r_wrist_roll_link")


def _close_angles(a, b, tol=1e-6):
    return all(abs(normalize_angle(x - y)) < tol for x, y in zip(a, b))


def test_solver_info_joint_names(ik):
    info = ik.solver_info()
    assert info.joint_names == [
        "r_shoulder_pan_joint",
        "r_shoulder_lift_joint",
        "r_upper_arm_roll_joint",
        "r_elbow_flex_joint",
        "r_forearm_roll_joint",
        "r_wrist_flex_joint",
        "r_wrist_roll_joint",
    ]
    assert info.link_names == ["r_wrist_roll_link"]


def test_solver_info_limits(ik):
    limits = ik.solver_info().limits
    assert limits[0].has_position_limits
    assert limits[0].min_position == pytest.approx(-2.1354)
    assert limits[0].max_position == pytest.approx(0.5646)
    assert limits[0].has_velocity_limits
    assert limits[0].max_velocity == pytest.approx(2.0)
    assert not limits[4].has_position_limits
    assert limits[4].min_position == pytest.approx(-math.pi)
    assert limits[4].max_position == pytest.approx(math.pi)
    assert not limits[4].has_velocity_limits


def test_solver_info_is_a_copy(ik):
    info = ik.solver_info()
    info.joint_names.clear()
    assert len(ik.solver_info().joint_names) == 7


def test_chain_offsets(ik):
    assert ik.torso_shoulder_offset == pytest.approx((0.0, -0.188, 0.0))
    assert ik.shoulder_upperarm_offset == pytest.approx(0.1)
    assert ik.upperarm_elbow_offset == pytest.approx(0.4)
    assert ik.elbow_wrist_offset == pytest.approx(0.321)
    assert ik.shoulder_wrist_offset == pytest.approx(0.821)
    assert ik.angle_multipliers == pytest.approx([1.0] * 7)


def test_negative_axis_gives_negative_multiplier():
    specs = list(JOINT_SPECS)
    name, jtype, parent, child, _, origin, soft = specs[0]
    specs[0] = (name, jtype, parent, child, (0.0, 0.0, -1.0), origin, soft)
    ik = PR2ArmIK(build_model(specs), "torso_lift_link", "r_wrist_roll_link")
    assert ik.angle_multipliers[0] == pytest.approx(-1.0)


def test_missing_tip_raises():
    with pytest.raises(ChainError):
        PR2ArmIK(build_model(), "torso_lift_link", "no_such_link")


def test_short_chain_raises():
    with pytest.raises(ChainError, match="7 joints"):
        PR2ArmIK(build_model(), "torso_lift_link", "r_wrist_flex_link")


def test_unregistered_parent_joint_raises():
    model = build_model()
    orphan = Joint("ghost_joint", JointType.REVOLUTE, "r_wrist_roll_link", "tool")
    model.add_link(Link("tool", parent_joint=orphan))
    with pytest.raises(ChainError, match="ghost_joint"):
        PR2ArmIK(model, "torso_lift_link", "tool")


def test_check_joint_limit(ik):
    assert ik.check_joint_limit(0.3, 0)
    assert not ik.check_joint_limit(0.7, 0)
    assert ik.check_joint_limit(2 * math.pi + 0.2, 0)
    assert ik.check_joint_limit(-3.5, 2)
    assert not ik.check_joint_limit(2 * math.pi - 3.5, 2)
    assert ik.check_joint_limit(3.0, 4)


def test_check_joint_limits(ik):
    assert ik.check_joint_limits(CONFIGS[0])
    bad = list(CONFIGS[0])
    bad[3] = 0.5
    assert not ik.check_joint_limits(bad)


@pytest.mark.parametrize("q", CONFIGS)
def test_shoulder_pan_round_trip(ik, q):
    pose = forward(q)
    solutions = ik.compute_ik_shoulder_pan(pose, q[0])
    assert solutions
    for sol in solutions:
        assert len(sol) == 7
        assert np.allclose(forward(sol), pose, atol=IK_NEAR)
    assert any(_close_angles(sol, q) for sol in solutions)


@pytest.mark.parametrize("q", CONFIGS)
def test_shoulder_roll_round_trip(ik, q):
    pose = forward(q)
    solutions = ik.compute_ik_shoulder_roll(pose, q[2])
    assert solutions
    for sol in solutions:
        assert sol[2] == pytest.approx(q[2])
        assert np.allclose(forward(sol), pose, atol=IK_NEAR)
    assert any(_close_angles(sol, q) for sol in solutions)


def test_unreachable_pose_has_no_solution(ik):
    pose = _trans(5.0, 0.0, 0.0)
    assert ik.compute_ik_shoulder_pan(pose, 0.0) == []
    assert ik.compute_ik_shoulder_roll(pose, -0.5) == []


def test_free_angle_outside_limits_has_no_solution(ik):
    pose = forward(CONFIGS[0])
    assert ik.compute_ik_shoulder_pan(pose, 1.0) == []
    assert ik.compute_ik_shoulder_roll(pose, 1.0) == []


def test_bad_pose_shape_raises(ik):
    with pytest.raises(ValueError):
        ik.compute_ik_shoulder_pan(np.identity(3), 0.0)


def test_solve_cosine_equation_values():
    sols = solve_cosine_equation(1.0, 0.0, 0.5)
    assert sols == pytest.approx((math.pi / 3, -math.pi / 3))


@pytest.mark.parametrize("a,b,c", [(1.0, 2.0, 0.3), (-0.5, 0.7, -0.4), (0.0, 1.0, 1.0)])
def test_solve_cosine_equation_satisfies_equation(a, b, c):
    sols = solve_cosine_equation(a, b, c)
    assert sols is not None
    for t in sols:
        assert a * math.cos(t) + b * math.sin(t) == pytest.approx(c)


def test_solve_cosine_equation_no_solution():
    assert solve_cosine_equation(1.0, 1.0, 2.0) is None
    assert solve_cosine_equation(0.0, 0.0, 0.0) is None


def test_solve_quadratic():
    assert solve_quadratic(1.0, -3.0, 2.0) == pytest.approx((2.0, 1.0))
    assert solve_quadratic(1.0, 2.0, 1.0) == pytest.approx((-1.0, -1.0))
    assert solve_quadratic(0.0, 2.0, -4.0) == pytest.approx((2.0, 2.0))
    assert solve_quadratic(1.0, 0.0, 1.0) is None