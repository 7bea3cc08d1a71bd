"""Tutor directory."""

from .directory import ALL_SUBJECTS, SUBJECTS, TEACHERS, Teacher, find_teachers, get_teacher

__all__ = ["ALL_SUBJECTS", "SUBJECTS", "TEACHERS", "Teacher", "find_teachers", "get_teacher"]
