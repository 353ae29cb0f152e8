# SPDX-License-Identifier: LGPL-2.1+

import os
import shutil
from subprocess import CalledProcessError
from typing import Iterator, Optional

from .types import CommandLineArguments, KeyPair
from .ui import complete_step, print_step, run_visible
from .utils import mkdir_last, output_stem

KEY_NAME = "id_rsa"

def candidate_key_pairs(args: CommandLineArguments) -> Iterator[KeyPair]:
    # The well-known pair first, then the one an earlier run exported for this output
    for name in (KEY_NAME, output_stem(args.output) + "." + KEY_NAME):
        private = os.path.join(args.invocation_dir, name)
        yield KeyPair(private_key=private, public_key=private + ".pub")

def find_key_pair(args: CommandLineArguments) -> Optional[KeyPair]:
    for pair in candidate_key_pairs(args):
        if os.path.isfile(pair.private_key) and os.path.isfile(pair.public_key):
            return pair
    return None

def generate_key_pair(private_key: str, comment: str) -> None:
    run_visible(["ssh-keygen",
                 "-t", "rsa",
                 "-b", "4096",
                 "-N", "",
                 "-C", comment,
                 "-q",
                 "-f", private_key],
                check=True)

def copy_private(src: str, dst: str) -> None:
    shutil.copyfile(src, dst)
    os.chmod(dst, 0o600)

def obtain_key_pair(args: CommandLineArguments, workspace: str) -> KeyPair:
    """Get a key pair into <workspace>/keys.

    An existing pair is copied, never moved, so the caller's originals stay
    where they are. Otherwise a new one without passphrase is generated.
    """

    keydir = mkdir_last(os.path.join(workspace, "keys"), 0o700)
    os.chmod(keydir, 0o700)
    pair = KeyPair(private_key=os.path.join(keydir, KEY_NAME),
                   public_key=os.path.join(keydir, KEY_NAME + ".pub"))

    existing = find_key_pair(args)
    if existing is not None:
        print_step("Using existing SSH key " + existing.private_key + ".")
        copy_private(existing.private_key, pair.private_key)
        shutil.copyfile(existing.public_key, pair.public_key)
        return pair

    with complete_step("Generating SSH key"):
        try:
            generate_key_pair(pair.private_key, "root@" + output_stem(args.output))
        except CalledProcessError as e:
            raise OSError("ssh-keygen failed with exit status {}".format(e.returncode))

    return pair

def install_authorized_key(root: str, pair: KeyPair) -> str:
    ssh_dir = os.path.join(root, "root/.ssh")
    os.makedirs(ssh_dir, 0o700, exist_ok=True)
    # makedirs() is subject to the umask and leaves existing directories alone
    os.chmod(ssh_dir, 0o700)

    authorized_keys = os.path.join(ssh_dir, "authorized_keys")
    shutil.copyfile(pair.public_key, authorized_keys)
    os.chmod(authorized_keys, 0o600)
    return authorized_keys

def export_key_pair(args: CommandLineArguments, pair: KeyPair) -> KeyPair:
    """Leave a copy of the pair next to the caller so it outlives the workspace."""

    private = os.path.join(args.invocation_dir, output_stem(args.output) + "." + KEY_NAME)
    exported = KeyPair(private_key=private, public_key=private + ".pub")

    source = find_key_pair(args)
    if source is not None and os.path.abspath(source.private_key) == os.path.abspath(exported.private_key):
        # We were reusing this very pair; just make sure it stays private
        os.chmod(exported.private_key, 0o600)
    else:
        copy_private(pair.private_key, exported.private_key)
        shutil.copyfile(pair.public_key, exported.public_key)

    return exported

def provision_credentials(args: CommandLineArguments, workspace: str, root: str) -> KeyPair:
    pair = obtain_key_pair(args, workspace)

    with complete_step("Setting up SSH access"):
        install_authorized_key(root, pair)

    with complete_step("Exporting SSH key",
                       "SSH private key written to {}") as output:
        exported = export_key_pair(args, pair)
        output.append(exported.private_key)

    return exported
