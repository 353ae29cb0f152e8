# SPDX-License-Identifier: LGPL-2.1+

# Fatal build conditions. Anything raised from here on aborts the
# remaining phases; the resource registry has already been drained by
# the time main() reports it.

class BuildError(Exception):
    status = 1

class HostEnvironmentError(BuildError):
    "A required tool is missing or the container runtime is unreachable."
    status = 2

class InputError(BuildError):
    status = 3

class FetchFailure(BuildError):
    status = 4

class BuildFailure(BuildError):
    status = 5

class FormatFailure(BuildError):
    status = 6

class NamespaceEntryFailure(BuildError):
    status = 7

class ConfigurationFailure(BuildError):
    "Only raised in strict mode; otherwise configuration problems are warnings."
    status = 8

class CommandTimeout(BuildError):
    status = 9
