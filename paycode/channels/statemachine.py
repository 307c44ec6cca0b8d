"""Manages state transitions for payment-code channels."""
import enum
import logging

from paycode.bip47 import addresses
from paycode.bip47.payment_code import PaymentCode
from paycode.bitcoin.hash import Hash

logger = logging.getLogger('channels')


class StateTransitionError(AssertionError):
    """Invalid state transition error."""
    pass


class ChannelStatus(enum.Enum):
    """Whether we broadcast a notification transaction to the counterparty."""
    UNSENT = 'unsent'
    SENT = 'sent'

    def __str__(self):
        """Convert status to human-readable string.

        Returns:
            str: Formatted status

        """
        mapping = {
            ChannelStatus.UNSENT: 'Not sent',
            ChannelStatus.SENT: 'Sent',
        }
        return mapping[self]


class IncomingAddress:
    """An address we derived for the counterparty to pay us at."""

    def __init__(self, address, index, seen=False):
        self.address = address
        self.index = index
        self.seen = seen

    def to_dict(self):
        return {'address': self.address, 'index': self.index, 'seen': self.seen}

    @staticmethod
    def from_dict(d):
        return IncomingAddress(d['address'], int(d['index']), bool(d.get('seen', False)))

    def __eq__(self, other):
        if not isinstance(other, IncomingAddress):
            return NotImplemented
        return (self.address, self.index, self.seen) == (other.address, other.index, other.seen)

    def __repr__(self):
        return "<IncomingAddress(address='{}', index={}, seen={})>".format(self.address, self.index, self.seen)


class ChannelModel:
    """Channel state model. This contains the core state of a channel with
    one counterparty."""

    def __init__(self, **kwargs):
        """Create an instance of ChannelModel.

        Returns:
            ChannelModel: Instance of ChannelModel.

        Attributes:
            notification_address (str): Counterparty notification address
                (primary key)
            payment_code (PaymentCode or None): Counterparty payment code
            incoming_addresses (list): IncomingAddress objects, by index
            current_incoming_index (int): Index of the newest incoming address
            current_outgoing_index (int): Next outgoing index to pay
            status (ChannelStatus): Outbound notification status
            ntx_hash (Hash or None): Hash of our notification transaction

        """
        self.notification_address = kwargs.get('notification_address', None)
        self.payment_code = kwargs.get('payment_code', None)
        self.incoming_addresses = kwargs.get('incoming_addresses', None) or []
        self.current_incoming_index = kwargs.get('current_incoming_index', 0)
        self.current_outgoing_index = kwargs.get('current_outgoing_index', 0)
        self.status = kwargs.get('status', ChannelStatus.UNSENT)
        self.ntx_hash = kwargs.get('ntx_hash', None)

    @property
    def is_notification_sent(self):
        return self.status == ChannelStatus.SENT

    def get_incoming(self, address):
        """Look up one of our incoming addresses.

        Args:
            address (str): Base58Check address.

        Returns:
            IncomingAddress: The entry, or None.

        """
        for a in self.incoming_addresses:
            if a.address == address:
                return a
        return None

    def to_dict(self):
        """Serialize to the persisted record layout.

        Returns:
            dict: JSON-compatible record.

        """
        return {
            'paymentCode': str(self.payment_code) if self.payment_code else None,
            'notificationAddress': self.notification_address,
            'incomingAddresses': [a.to_dict() for a in self.incoming_addresses],
            'currentIncomingIndex': self.current_incoming_index,
            'currentOutgoingIndex': self.current_outgoing_index,
            'status': self.status.value,
            'ntxHash': str(self.ntx_hash) if self.ntx_hash else None,
        }

    @staticmethod
    def from_dict(d):
        """Deserialize a persisted record.

        Args:
            d (dict): Record as written by to_dict().

        Returns:
            ChannelModel: The channel.

        Raises:
            KeyError: If notificationAddress is missing.
            ValueError: If a field does not parse.

        """
        code = d.get('paymentCode')
        ntx_hash = d.get('ntxHash')
        incoming = [IncomingAddress.from_dict(a) for a in d.get('incomingAddresses') or []]
        incoming.sort(key=lambda a: a.index)

        return ChannelModel(
            notification_address=d['notificationAddress'],
            payment_code=PaymentCode.from_b58check(code) if code else None,
            incoming_addresses=incoming,
            current_incoming_index=int(d.get('currentIncomingIndex', max([a.index for a in incoming] or [0]))),
            current_outgoing_index=int(d.get('currentOutgoingIndex', 0)),
            status=ChannelStatus(d.get('status') or ChannelStatus.UNSENT.value),
            ntx_hash=Hash(ntx_hash) if ntx_hash else None,
        )

    def __repr__(self):
        return "<Channel(notification_address='{}', payment_code='{}', incoming={}, current_incoming_index={}, current_outgoing_index={}, status='{}', ntx_hash='{}')>".format(self.notification_address, self.payment_code, len(self.incoming_addresses), self.current_incoming_index, self.current_outgoing_index, self.status.value, self.ntx_hash)  # nopep8


class ChannelStateMachine:
    """Channel state machine.

    Applies one event at a time to a ChannelModel. Transitions that make a
    new incoming address return its private key so the caller can import
    it into the wallet before releasing its lock.

    """

    def __init__(self, model, account):
        """Instantiate a channel state machine.

        Args:
            model (ChannelModel): Channel state model.
            account (Account): Our payment-code account.

        Returns:
            ChannelStateMachine: instance of ChannelStateMachine.

        """
        self._model = model
        self._account = account

    @property
    def model(self):
        return self._model

    @property
    def state(self):
        """Get the outbound notification status.

        Returns:
            ChannelStatus: Channel status.

        """
        return self._model.status

    def _issue_incoming(self, index):
        key = addresses.derive_receive_key(self._account, self._model.payment_code, index)
        address = key.public_key.address(compressed=True)
        self._model.incoming_addresses.append(IncomingAddress(address, index))
        self._model.current_incoming_index = index
        logger.debug("Issued incoming address %s at index %d for %s",
                     address, index, self._model.notification_address)
        return key

    def receive_notification(self, payment_code):
        """Process a decoded inbound notification.

        Stores the payment code and issues incoming address 0, unless the
        channel already has incoming addresses, in which case the
        notification is a duplicate.

        Args:
            payment_code (PaymentCode): The sender's payment code.

        Returns:
            PrivateKey: Key of the new incoming address, or None if
                nothing changed.

        """
        if self._model.incoming_addresses:
            return None

        if self._model.payment_code is None:
            self._model.payment_code = payment_code
        elif self._model.payment_code != payment_code:
            raise StateTransitionError("Payment code does not match the channel.")

        return self._issue_incoming(0)

    def receive_payment(self, address):
        """Process a payment to one of our incoming addresses.

        Marks the address seen and issues the next one.

        Args:
            address (str): The address that was paid.

        Returns:
            PrivateKey: Key of the new incoming address, or None if the
                address was already seen.

        Raises:
            StateTransitionError: If the address was not issued by this
                channel.

        """
        entry = self._model.get_incoming(address)
        if entry is None:
            raise StateTransitionError("Address {} does not belong to this channel.".format(address))
        if entry.seen:
            return None

        entry.seen = True
        return self._issue_incoming(self._model.current_incoming_index + 1)

    def notification_sent(self, txid):
        """Record that we broadcast a notification to the counterparty.

        State machine transitions from UNSENT to SENT.

        Args:
            txid (Hash or str): Notification transaction id.

        """
        self._model.ntx_hash = txid if isinstance(txid, Hash) or txid is None else Hash(txid)
        self._model.status = ChannelStatus.SENT

    def next_outgoing_address(self):
        """Get the address for our next payment to the counterparty.

        Returns:
            str: Base58Check address at current_outgoing_index.

        Raises:
            StateTransitionError: If the payment code is unknown.

        """
        if self._model.payment_code is None:
            raise StateTransitionError("Channel has no payment code.")

        return addresses.send_address(self._account, self._model.payment_code,
                                      self._model.current_outgoing_index)

    def outgoing_payment_made(self):
        """Advance the outgoing index after a payment."""
        self._model.current_outgoing_index += 1
