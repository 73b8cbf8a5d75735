# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""WebSocket signaling relay pairing one broadcaster with its viewers."""
