# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing.

This package contains the error envelope, CORS and security header
middleware applied to every BloodConnect API response.
"""
