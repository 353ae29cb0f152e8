# SPDX-License-Identifier: LGPL-2.1+

__version__ = '0.1'
