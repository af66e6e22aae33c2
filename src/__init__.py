"""ClassCrew Backend.

Course-enrollment marketplace backend: turns selected cart courses into
verified, paid, enrolled class registrations.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
