# armik7

Closed-form inverse kinematics for seven-joint arms laid out as a
shoulder pan, shoulder lift, upper-arm roll, elbow flex, forearm roll,
wrist flex and wrist roll chain.

One joint is redundant, so the solver holds it fixed (either the
shoulder pan or the upper-arm roll) and solves the remaining six
analytically. A search wrapper then steps the free joint across its
range until a solution is found, the range is used up, or a timeout
expires.

## Installing

```
pip install armik7
```

The only runtime dependency is numpy.

## Describing the arm

The chain is built from plain Python objects in `armik7.chain`:

- `JointType` – unknown, revolute, continuous, prismatic, floating,
  planar or fixed.
- `Pose` – a translation and a rotation quaternion; `Pose.distance()`
  gives the length of the translation.
- `Limits` and `SafetyLimits` – hard limits and soft limits. Where a
  joint has soft limits they are used in preference to the hard ones.
- `Joint` – name, type, parent and child link names, axis, origin
  offset and optional limits.
- `Link` – a named body; `Link.parent_link()` gives the name of the
  link it hangs from, or `None` at the root.
- `RobotModel` – a registry of links and joints with `add_link`,
  `add_joint`, `get_link` and `get_joint`. Adding a joint makes it the
  parent joint of its child link, whichever is added first; duplicate
  names, or a second parent joint for a link, raise `ValueError`.
- `JointLimit` and `KinematicSolverInfo` – the joint names, link names
  and limits that a solver reports about its chain.

`normalize_angle(angle)` wraps any angle into `(-pi, pi]`.

## Solving

`armik7.arm_ik.PR2ArmIK(robot_model, root_name, tip_name)` walks the
chain from the tip link towards the root, skipping fixed and unknown
joints, and raises `ChainError` if a link has no parent joint, a joint
cannot be found, or there are not exactly seven movable joints. Link
lengths are taken from the offsets of the second, fourth and sixth
joints, and the shoulder position from the first. Once built:

- `compute_ik_shoulder_pan(pose, t1)` returns every solution with the
  shoulder pan fixed at `t1`.
- `compute_ik_shoulder_roll(pose, t3)` returns every solution with the
  upper-arm roll fixed at `t3`.
- `check_joint_limits(joint_values)` tells whether all seven values lie
  within their limits; `check_joint_limit(joint_value, joint_num)` does
  the same for one joint.
- `solver_info()` returns a copy of the chain's `KinematicSolverInfo`.

`pose` is a 4x4 homogeneous transform of the tip in the root frame; any
other shape raises `ValueError`. Each solution is a list of seven joint
angles ordered from root to tip. An empty list means no solution.

The helpers `solve_cosine_equation(a, b, c)` (solving
`a*cos(t) + b*sin(t) = c`) and `solve_quadratic(a, b, c)` return a pair
of roots, or `None` when there are none.

## Searching over the free joint

`armik7.solver.PR2ArmIKSolver(robot_model, root_frame_name,
tip_frame_name, search_discretization_angle, free_angle)` wraps the
analytic solver. `free_angle` is `0` to search over the shoulder pan;
any other value searches over the upper-arm roll (index `2`).

- `cart_to_jnt(q_init, pose)` returns the solution closest to `q_init`,
  or `None`.
- `cart_to_jnt_all(q_init, pose)` returns every solution.
- `search_all(q_in, pose, timeout)` steps the free joint outwards from
  its seed value, alternating sides, until some solutions appear, and
  returns them all.
- `search(q_in, pose, timeout, consistency_limit=None,
  solution_callback=None)` does the same for a single solution. With a
  `consistency_limit` the free joint stays within that distance of its
  seed value. A `solution_callback` is called with the pose matrix and
  each candidate, and accepts it by returning `ErrorCode.SUCCESS`.
- `solver_info()` and `frame_id()` describe the chain and the frame
  poses are given in.

A failed search raises `IKSearchError`; its `error_code` attribute is
`ErrorCode.TIMED_OUT` or `ErrorCode.NO_IK_SOLUTION`. `next_count` gives
the order in which the free joint is stepped, and `euclidean_distance`
measures how far a candidate lies from the seed.

```python
import numpy as np
from armik7.solver import PR2ArmIKSolver, IKSearchError

solver = PR2ArmIKSolver(model, "torso_lift_link", "r_wrist_roll_link", 0.01, 2)
target = np.eye(4)
target[:3, 3] = [0.75, -0.2, 0.0]
try:
    angles = solver.search([0.0] * 7, target, timeout=5.0)
except IKSearchError as exc:
    print("no solution:", exc.error_code)
```

## What it does not do

The package has no forward kinematics, does not read robot description
files (the `RobotModel` is built in code), and offers no command-line
tool or service; it is a library to be called from Python.

## Running the tests

```
pip install armik7[test]
pytest
```