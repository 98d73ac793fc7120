# api_relawan/app/utils/errors.py
"""
Exception domain yang dilempar service dan diubah menjadi respon JSON
oleh handler di middleware/error_handlers.py.
"""

from __future__ import annotations


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ApiError):
    status_code = 400


class Forbidden(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class Conflict(ApiError):
    status_code = 409


class UpstreamError(ApiError):
    status_code = 502
