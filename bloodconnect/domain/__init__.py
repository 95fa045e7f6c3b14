# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the BloodConnect platform.

This package contains the business rules for blood requests: pairing
validation, the status state machine and the status history ledger.
Functions here never write; the matching checks read through the repository
they are given.
"""
