"""Timed terminal quizzes for classroom students."""
