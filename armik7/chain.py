"""Kinematic chain description: links, joints, limits and solver metadata."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum


def normalize_angle(angle: float) -> float:
    """Wrap an angle in radians into the interval (-pi, pi]."""
    two_pi = 2.0 * math.pi
    positive = math.fmod(math.fmod(angle, two_pi) + two_pi, two_pi)
    if positive > math.pi:
        positive -= two_pi
    return positive


class JointType(Enum):
    """Kind of motion a joint allows."""

    UNKNOWN = "unknown"
    REVOLUTE = "revolute"
    CONTINUOUS = "continuous"
    PRISMATIC = "prismatic"
    FLOATING = "floating"
    PLANAR = "planar"
    FIXED = "fixed"


@dataclass(frozen=True)
class Pose:
    """A rigid offset: a translation and a rotation quaternion (x, y, z, w)."""

    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    rotation: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)

    def distance(self) -> float:
        """Length of the translation part."""
        return math.sqrt(sum(c * c for c in self.position))


@dataclass(frozen=True)
class Limits:
    """Hard limits of a joint."""

    lower: float = 0.0
    upper: float = 0.0
    effort: float = 0.0
    velocity: float = 0.0


@dataclass(frozen=True)
class SafetyLimits:
    """Soft limits of a joint, used in preference to the hard ones."""

    soft_lower_limit: float = 0.0
    soft_upper_limit: float = 0.0
    k_position: float = 0.0
    k_velocity: float = 0.0


@dataclass
class Joint:
    """A joint connecting a parent link to a child link."""

    name: str
    type: JointType
    parent_link_name: str
    child_link_name: str
    axis: tuple[float, float, float] = (1.0, 0.0, 0.0)
    origin: Pose = field(default_factory=Pose)
    limits: Limits | None = None
    safety: SafetyLimits | None = None


@dataclass
class Link:
    """A rigid body; its parent joint is set when the model connects it."""

    name: str
    parent_joint: Joint | None = None

    def parent_link(self) -> str | None:
        """Name of the link this one hangs from, or None at the root."""
        if self.parent_joint is None:
            return None
        return self.parent_joint.parent_link_name


class RobotModel:
    """A tree of links joined by joints, looked up by name."""

    def __init__(self) -> None:
        self.links: dict[str, Link] = {}
        self.joints: dict[str, Joint] = {}

    def add_link(self, link: Link) -> None:
        """Register a link, attaching any joint already declared as its parent."""
        if link.name in self.links:
            raise ValueError(f"duplicate link: {link.name}")
        self.links[link.name] = link
        if link.parent_joint is None:
            link.parent_joint = next(
                (j for j in self.joints.values() if j.child_link_name == link.name),
                None,
            )

    def add_joint(self, joint: Joint) -> None:
        """Register a joint and make it the parent joint of its child link."""
        if joint.name in self.joints:
            raise ValueError(f"duplicate joint: {joint.name}")
        child = self.links.get(joint.child_link_name)
        if child is not None and child.parent_joint is not None:
            raise ValueError(
                f"link {joint.child_link_name} already has parent joint "
                f"{child.parent_joint.name}"
            )
        self.joints[joint.name] = joint
        if child is not None:
            child.parent_joint = joint

    def get_link(self, name: str | None) -> Link | None:
        """The link with this name, or None."""
        if name is None:
            return None
        return self.links.get(name)

    def get_joint(self, name: str | None) -> Joint | None:
        """The joint with this name, or None."""
        if name is None:
            return None
        return self.joints.get(name)


@dataclass
class JointLimit:
    """Position and velocity limits of one joint as reported by a solver."""

    joint_name: str = ""
    has_position_limits: bool = False
    min_position: float = 0.0
    max_position: float = 0.0
    has_velocity_limits: bool = False
    max_velocity: float = 0.0


@dataclass
class KinematicSolverInfo:
    """Joints, limits and links a solver works on, ordered root to tip."""

    joint_names: list[str] = field(default_factory=list)
    limits: list[JointLimit] = field(default_factory=list)
    link_names: list[str] = field(default_factory=list)