"""Fedora bare-metal image preparation.

Downloads a Fedora release's container and server images, verifies them
against the published CHECKSUM manifests, and repackages the server image's
kernel, initrd, kernel modules and root filesystem as tarballs for
provisioning.
"""
