"""Allow ``python -m usbssh``."""

from usbssh.cli.app import main

main()
