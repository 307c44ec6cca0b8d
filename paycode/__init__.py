"""paycode project variables."""
import os
import os.path


VERSION = (0, 4, 0)

__version__ = '.'.join(map(str, VERSION))


# Defines hard coded global variables
PAYCODE_VERSION = __version__
PAYCODE_VERSION_MESSAGE = 'paycode version %(version)s'
PAYCODE_USER_FOLDER = os.path.expanduser('~/.paycode/')
PAYCODE_CONFIG_FILE = PAYCODE_USER_FOLDER + 'paycode.json'
# two parents up from current dir
PAYCODE_BASE_DIR = os.path.abspath(os.path.join(os.path.abspath(__file__), os.pardir, os.pardir))


# simple logic to load the environment only once
if "env_loaded" not in locals():
    env_loaded = True

    dotenv_path = os.path.join(PAYCODE_BASE_DIR, ".env")
    if os.path.exists(dotenv_path):
        with open(dotenv_path, "rt") as f:
            for line in f:
                if not line or line.startswith('#') or '=' not in line:
                    continue
                key, value = line.strip().split('=', 1)
                value = value.strip("'").strip('"')
                os.environ.setdefault(key, value)


# Defines configurable global variables
PAYCODE_TESTNET = os.environ.get('PAYCODE_TESTNET', '0').lower() in ('1', 'true', 'yes', 'on')
PAYCODE_CHANNELS_PATH = os.environ.get('PAYCODE_CHANNELS_PATH',
                                       os.path.join(PAYCODE_USER_FOLDER, 'channels.json'))
