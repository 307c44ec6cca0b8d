"""Settings shared by the paycode commands and the channel client.

Values come from a JSON file (``~/.paycode/paycode.json`` by default),
then from explicit overrides, with DEFAULTS filling whatever is missing.
"""
import os
import json
import logging
from codecs import open

from path import Path

import paycode

logger = logging.getLogger('paycode')


def str2bool(v):
    return str(v).lower() in ("yes", "true", "t", "1", "on")


class Config(object):
    """
    Args:
        config_file (str): JSON settings file. It need not exist.
        config (iterable): (key, value) pairs applied over the file.
    """

    DEFAULTS = dict(testnet=paycode.PAYCODE_TESTNET,
                    channels_path=paycode.PAYCODE_CHANNELS_PATH,
                    rescan_depth=2)

    def __init__(self, config_file=paycode.PAYCODE_CONFIG_FILE, config=None):
        self.file = Path(config_file).expand().absolute()
        self.dir = self.file.parent
        self.settings = {}
        self.load()
        for key, value in (config or []):
            self.update_key(key, value)

    def __getattr__(self, name):
        settings = self.__dict__.get('settings', {})
        if name not in settings:
            raise AttributeError(name)
        return settings[name]

    def save(self):
        """Write the settings atomically through a .tmp sibling."""
        self.dir.makedirs_p()
        tmp = self.file + ".tmp"
        with open(tmp, mode="w", encoding='utf-8') as fh:
            json.dump(self.settings, fh, indent=2, sort_keys=True)
        os.replace(tmp, self.file)
        return self

    def load(self):
        """Read self.file when it is a readable JSON object, then fill in
        DEFAULTS."""
        self.settings = {}
        if self.file.is_file():
            try:
                with open(self.file, mode="r", encoding='utf-8') as fh:
                    loaded = json.load(fh)
            except ValueError:
                logger.warning("Could not parse %s, using defaults", self.file)
            else:
                if isinstance(loaded, dict):
                    self.settings = loaded
                else:
                    logger.warning("%s does not hold a JSON object, using defaults", self.file)

        for key, value in self.DEFAULTS.items():
            self.settings.setdefault(key, value)
        self._normalize()
        return self

    def update_key(self, key, value):
        self.settings[key] = value
        self._normalize()

    def _normalize(self):
        self.settings['testnet'] = str2bool(self.settings['testnet'])
        depth = int(self.settings['rescan_depth'])
        if depth < 0:
            raise ValueError("rescan_depth must not be negative.")
        self.settings['rescan_depth'] = depth

    def fmt(self):
        lines = ["file: %s" % self.file]
        lines += ["%s: %s" % (key, self.settings[key]) for key in sorted(self.settings)]
        return "\n".join(lines) + "\n"

    def __repr__(self):
        return "<Config\n%s>" % self.fmt()
