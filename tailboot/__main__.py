# pylint: disable=missing-docstring
from tailboot.tailboot import main

main()
