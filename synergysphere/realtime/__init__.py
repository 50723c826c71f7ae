"""Realtime infrastructure (Socket.IO presence, rooms and event fan-out).

Projects, tasks, comments, direct messages and notifications all share one
socket server. The core modules here only depend on a server object exposing
``enter_room``/``leave_room``/``emit`` and on the stores they are given, so
they can be exercised with fakes.
"""
