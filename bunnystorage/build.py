"""Build information for the bunnystorage package."""

# Name of the package, used in the default user agent.
NAME = "bunnystorage"

VERSION = "0.1.0"

URL = "https://github.com/l0wl3vel/bunnystorage-go"
