"""Analytic inverse kinematics for seven-joint arms with a search over the redundant joint."""

__version__ = "0.1.0"
__all__ = ["chain", "arm_ik", "solver"]