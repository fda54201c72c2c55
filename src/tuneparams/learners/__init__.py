"""Learner collaborator contract."""

from .base import Learner, check_learner

__all__ = ["Learner", "check_learner"]
