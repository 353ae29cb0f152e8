# PYTHON_ARGCOMPLETE_OK
# SPDX-License-Identifier: LGPL-2.1+

from .main import main

main()
