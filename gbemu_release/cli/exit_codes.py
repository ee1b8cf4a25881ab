# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI exit codes.

TESTS_FAILED shares its value with USER_ERROR, so the validation commands
exit 0 or 1 and nothing else on a completed run.
"""

SUCCESS: int = 0
USER_ERROR: int = 1
TESTS_FAILED: int = 1
CONFIG_ERROR: int = 2
RUNTIME_ERROR: int = 3
VALIDATION_ERROR: int = 4
