"""Authentication and authorization.

Learn: Email/password login mints two credentials:
1. A short-lived signed access token (JWT), checked statelessly by the gate
2. A long-lived opaque refresh token, checked against the user row and
   rotated on every use

Both travel as HttpOnly cookies. Access to tasks is then decided by the
task's assignment list (see services/task_service.py).
"""
