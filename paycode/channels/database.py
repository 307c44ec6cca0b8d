"""Provides persistent storage and retrieval of channel state."""
import collections
import json
import logging
import os
import threading

from path import Path

from paycode.bip47.exceptions import PersistenceError
from paycode.bip47.payment_code import PaymentCode

from .statemachine import ChannelModel

logger = logging.getLogger('channels')


class DatabaseBase:
    """Base class for a Database interface."""

    def load(self):
        """Read every persisted channel record.

        Returns:
            list: List of records (dict).

        Raises:
            PersistenceError: If the stored state cannot be read.

        """
        raise NotImplementedError()

    def save(self, records):
        """Replace the persisted state with records.

        Args:
            records (list): List of records (dict).

        Raises:
            PersistenceError: If the state cannot be written.

        """
        raise NotImplementedError()

    @property
    def lock(self):
        """Get a database lock."""
        raise NotImplementedError()


class JsonDatabase(DatabaseBase):
    """JSON file implementation of the database interface.

    The file holds a JSON array of channel records. Saving writes a
    sibling temporary file and renames it over the original, so an
    interrupted save leaves the previous state intact.

    """

    def __init__(self, path):
        """Create a new JsonDatabase instance.

        Args:
            path (str): Database file path.

        Returns:
            JsonDatabase: Instance of JsonDatabase.

        """
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self):
        return self._path

    def load(self):
        if not os.path.exists(self._path):
            return []

        try:
            with open(self._path, 'r') as f:
                records = json.load(f)
        except OSError as e:
            raise PersistenceError("Could not read {}: {}".format(self._path, e))
        except ValueError as e:
            raise PersistenceError("Malformed channel file {}: {}".format(self._path, e))

        if not isinstance(records, list):
            raise PersistenceError("Channel file {} does not hold a list.".format(self._path))

        return records

    def save(self, records):
        tmp_path = self._path + '.tmp'
        try:
            dirname = Path(self._path).parent
            if dirname:
                dirname.makedirs_p()
            with open(tmp_path, 'w') as f:
                json.dump(records, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self._path)
        except (OSError, TypeError) as e:
            raise PersistenceError("Could not write {}: {}".format(self._path, e))

    @property
    def lock(self):
        return self._lock


def _copy_sent(source, target):
    target.status = source.status
    target.ntx_hash = source.ntx_hash


class ChannelStore:
    """Channels keyed by counterparty notification address."""

    def __init__(self):
        self._channels = collections.OrderedDict()

    def get(self, notification_address):
        return self._channels.get(notification_address)

    def add(self, model):
        """Add a new channel.

        Args:
            model (ChannelModel): The channel.

        Raises:
            KeyError: If a channel with the same key exists.

        """
        if model.notification_address in self._channels:
            raise KeyError("Channel {} already exists.".format(model.notification_address))
        self._channels[model.notification_address] = model

    def merge(self, model):
        """Insert or replace a channel from persisted state.

        An incoming channel without incoming addresses never replaces a
        channel that has some. A sent notification is never forgotten:
        whichever side of the merge knows the channel as sent passes its
        status and ntx_hash to the channel that is kept.

        Args:
            model (ChannelModel): The imported channel.

        Returns:
            bool: True if the store changed.

        """
        existing = self._channels.get(model.notification_address)
        if existing is not None and existing.incoming_addresses and not model.incoming_addresses:
            if model.is_notification_sent and not existing.is_notification_sent:
                _copy_sent(model, existing)
                return True
            logger.debug("Kept channel %s, import has no incoming addresses", model.notification_address)
            return False

        if existing is not None and existing.is_notification_sent and not model.is_notification_sent:
            _copy_sent(existing, model)
        self._channels[model.notification_address] = model
        return True

    def find_by_payment_code(self, payment_code):
        """Look up a channel by counterparty payment code.

        Args:
            payment_code (PaymentCode or str): The payment code.

        Returns:
            ChannelModel: The channel, or None.

        """
        code = PaymentCode.parse(payment_code)
        for model in self._channels.values():
            if model.payment_code == code:
                return model
        return None

    def find_by_incoming_address(self, address):
        """Look up the channel that issued an incoming address.

        Returns:
            ChannelModel: The channel, or None.

        """
        for model in self._channels.values():
            if model.get_incoming(address) is not None:
                return model
        return None

    def to_records(self):
        return [model.to_dict() for model in self._channels.values()]

    def keys(self):
        return list(self._channels.keys())

    def values(self):
        return list(self._channels.values())

    def __contains__(self, notification_address):
        return notification_address in self._channels

    def __len__(self):
        return len(self._channels)

    def __iter__(self):
        return iter(self.values())
