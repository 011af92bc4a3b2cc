"""Classroom check-in bot package.

Feature modules (students, courses, sessions, attendance, conversation, scheduling)
sit behind a thin Flask controller layer on top of service/repository layers.
"""
