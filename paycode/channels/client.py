"""A high-level client that tracks payment-code channels for one account.

The client is fed every transaction the wallet sees. It recognizes
notifications addressed to us, payments to the addresses it issued, and
notifications we broadcast ourselves, and keeps the channel map and the
wallet's watched keys in step with them.
"""
import logging
import threading

from paycode.bip47 import notification
from paycode.bip47.account import Account
from paycode.bip47.exceptions import MalformedPaymentCodeError
from paycode.bip47.exceptions import NotANotificationError
from paycode.bip47.exceptions import PersistenceError
from paycode.bip47.exceptions import RescanSkipped
from paycode.bip47.payment_code import PaymentCode
from paycode.bip47.addresses import derive_receive_key

from .database import ChannelStore
from .database import JsonDatabase
from .statemachine import ChannelModel
from .statemachine import ChannelStateMachine

logger = logging.getLogger('channels')


class NotFoundError(IndexError):
    """Channel not found error."""
    pass


class ChannelClient:
    """Payment-code channel client."""

    DEFAULT_RESCAN_DEPTH = 2
    """Blocks to rewind below a notification's height."""

    @classmethod
    def from_config(cls, account, wallet, blockchain, config):
        """Build a client persisting to config.channels_path and rewinding
        config.rescan_depth blocks.

        Args:
            config (paycode.config.Config): Loaded settings.

        """
        return cls(account, wallet, blockchain, JsonDatabase(config.channels_path),
                   rescan_depth=config.rescan_depth)

    def __init__(self, account, wallet, blockchain, database, rescan_depth=DEFAULT_RESCAN_DEPTH):
        """Instantiate a channel client and restore its persisted channels.

        The wallet is asked to watch our notification address and to
        import the key of every incoming address of every known channel.

        Args:
            account (paycode.bip47.Account): Our private account.
            wallet (walletwrapper.WalletWrapperBase): Wallet interface.
            blockchain (blockchain.BlockchainBase): Chain interface.
            database (database.DatabaseBase): Channel persistence.
            rescan_depth (int): Blocks to rewind below a notification.

        Returns:
            ChannelClient: Instance of ChannelClient.

        Raises:
            PersistenceError: If the persisted channels cannot be read.

        """
        if not account.is_private:
            raise ValueError("ChannelClient needs an account with private keys.")

        self._account = account
        self._wallet = wallet
        self._blockchain = blockchain
        self._database = database
        self._rescan_depth = rescan_depth

        self._lock = threading.RLock()
        self._store = ChannelStore()

        if not self._wallet.is_watched(self._account.notification_address):
            self._wallet.watch_address(self._account.notification_address)

        self.load()

    @property
    def account(self):
        return self._account

    @property
    def testnet(self):
        return self._account.testnet

    def _state_machine(self, model):
        return ChannelStateMachine(model, self._account)

    def _import_keys(self, model):
        # Keys are re-derived, never persisted
        if model.payment_code is None:
            return
        for entry in model.incoming_addresses:
            if self._wallet.is_watched(entry.address):
                continue
            key = derive_receive_key(self._account, model.payment_code, entry.index)
            self._wallet.import_watch_key(key)

    def _persist_quietly(self):
        # Transaction processing keeps going when the database is down
        try:
            self.save()
        except PersistenceError:
            logger.exception("Error while saving channels:")
            return False
        return True

    def _request_rescan(self, height):
        """Ask the chain view to rewind below a notification.

        A payment to a freshly issued address can sit in the same or the
        next block as the notification that revealed it, whichever side
        sent it. Skipped when the notification is above the chain tip or
        too close to genesis.

        Args:
            height (int or None): Confirmation height of the notification.

        Returns:
            bool: True if a rollback was requested.

        """
        if height is None:
            return False

        target = height - self._rescan_depth
        try:
            current = self._blockchain.current_height()
            if target < 0 or height > current:
                logger.info(str(RescanSkipped(target, current)))
                return False

            self._blockchain.rollback_to(target)
            logger.info("Rescanning from height %d", target)
            return True
        except Exception:
            logger.exception("Error while rescanning from height {}:".format(target))
            return False

    def _get_or_create(self, notification_address, payment_code=None):
        model = self._store.get(notification_address)
        if model is None:
            model = ChannelModel(notification_address=notification_address, payment_code=payment_code)
            self._store.add(model)
            logger.info("Created channel %s", notification_address)
        elif model.payment_code is None and payment_code is not None:
            model.payment_code = payment_code
        return model

    def _on_inbound_notification(self, txn, height):
        try:
            code = notification.decode_notification(txn, self._account.notification_key)
        except NotANotificationError as e:
            logger.debug("Transaction %s: %s", txn.hash, e)
            return False
        except MalformedPaymentCodeError as e:
            logger.warning("Notification %s carries a malformed payment code: %s", txn.hash, e)
            return False

        address = Account.from_payment_code(code, self.testnet).notification_address
        created = address not in self._store
        model = self._get_or_create(address, code)

        key = self._state_machine(model).receive_notification(code)
        if key is not None:
            self._wallet.import_watch_key(key)

        changed = created or key is not None
        if changed:
            self._request_rescan(height)
        return changed

    def _on_incoming_payment(self, model, address):
        key = self._state_machine(model).receive_payment(address)
        if key is None:
            return False

        self._wallet.import_watch_key(key)
        return True

    def _on_outbound_notification(self, notification_address, txid, height):
        model = self._store.get(notification_address)
        if model is not None and model.is_notification_sent:
            return False

        model = self._get_or_create(notification_address)
        self._state_machine(model).notification_sent(txid)
        logger.info("Notification to %s sent in %s", notification_address, txid)
        self._request_rescan(height)
        return True

    def _paid_incoming_address(self, txn):
        for o in txn.outputs:
            address = notification.output_address(o, self.testnet)
            if address is None:
                continue
            model = self._store.find_by_incoming_address(address)
            if model is not None:
                return model, address
        return None, None

    def _classify(self, txn, height):
        if notification.is_notification_to(txn, self._account.notification_address):
            return self._on_inbound_notification(txn, height)

        model, address = self._paid_incoming_address(txn)
        if model is not None:
            return self._on_incoming_payment(model, address)

        return self._classify_sent(txn, height)

    def _classify_sent(self, txn, height):
        address = notification.find_outgoing_notification_address(txn, self._wallet.is_mine, self.testnet)
        if address is None:
            return False
        return self._on_outbound_notification(address, txn.hash, height)

    def process_received(self, txn, height=None):
        """Process a transaction the wallet received.

        Failures are logged and never raised, so one bad transaction
        cannot stop a batch.

        Args:
            txn (paycode.bitcoin.Transaction): The transaction.
            height (int or None): Confirmation height, if known.

        Returns:
            bool: True if channel state changed.

        """
        with self._lock:
            try:
                changed = self._classify(txn, height)
            except Exception:
                logger.exception("Error while processing received transaction:")
                return False

            if changed:
                self._persist_quietly()
            return changed

    def process_sent(self, txn, height=None):
        """Process a transaction the wallet sent.

        Args:
            txn (paycode.bitcoin.Transaction): The transaction.
            height (int or None): Confirmation height, if known.

        Returns:
            bool: True if channel state changed.

        """
        with self._lock:
            try:
                changed = self._classify_sent(txn, height)
            except Exception:
                logger.exception("Error while processing sent transaction:")
                return False

            if changed:
                self._persist_quietly()
            return changed

    def channel_for(self, notification_address):
        with self._lock:
            return self._store.get(notification_address)

    def channel_for_payment_code(self, payment_code):
        """Get the channel with a counterparty.

        Args:
            payment_code (PaymentCode or str): Their payment code.

        Returns:
            ChannelModel: The channel, or None.

        """
        with self._lock:
            return self._store.find_by_payment_code(payment_code)

    def channel_for_address(self, address):
        """Get the channel that issued an incoming address.

        Returns:
            ChannelModel: The channel, or None.

        """
        with self._lock:
            return self._store.find_by_incoming_address(address)

    def list(self):
        """Get the notification addresses of all channels.

        Returns:
            list: List of notification addresses (str).

        """
        with self._lock:
            return self._store.keys()

    def _resolve(self, channel):
        if isinstance(channel, ChannelModel):
            return channel
        model = self._store.get(channel)
        if model is None and PaymentCode.is_valid(channel):
            model = self._store.find_by_payment_code(channel)
        if model is None:
            raise NotFoundError("Channel not found.")
        return model

    def next_outgoing_address(self, channel):
        """Get the address our next payment to a counterparty goes to.

        Args:
            channel (ChannelModel or str): The channel, its notification
                address or the counterparty's payment code.

        Returns:
            str: Base58Check address.

        Raises:
            NotFoundError: If the channel was not found.
            StateTransitionError: If the channel has no payment code.

        """
        with self._lock:
            return self._state_machine(self._resolve(channel)).next_outgoing_address()

    def record_outgoing_payment(self, channel):
        """Advance the outgoing index after paying next_outgoing_address().

        Raises:
            NotFoundError: If the channel was not found.
            PersistenceError: If saving fails. The index is advanced in
                memory regardless.

        """
        with self._lock:
            self._state_machine(self._resolve(channel)).outgoing_payment_made()
            self.save()

    def can_send_to(self, payment_code):
        """Check whether our notification to a counterparty was sent.

        A channel found by notification address without a payment code
        gets payment_code attached.

        Args:
            payment_code (PaymentCode or str): Their payment code.

        Returns:
            bool: True if payments can be sent.

        Raises:
            PersistenceError: If attaching the payment code cannot be saved.

        """
        with self._lock:
            code = PaymentCode.parse(payment_code)
            model = self._store.find_by_payment_code(code)
            if model is None:
                address = Account.from_payment_code(code, self.testnet).notification_address
                model = self._store.get(address)
                if model is None:
                    return False
                model.payment_code = code
                self.save()

            return model.is_notification_sent

    def make_notification_outputs(self, their_code, input_private_key, outpoint):
        """Build the outputs of a notification to a counterparty.

        Args:
            their_code (PaymentCode or str): Their payment code.
            input_private_key (paycode.bitcoin.PrivateKey): Key of the
                transaction's first input.
            outpoint (bytes or paycode.bitcoin.TransactionInput): That
                input's outpoint.

        Returns:
            list: The dust output and the OP_RETURN output.

        """
        return notification.build_notification_outputs(self._account, their_code, input_private_key, outpoint)

    def mark_notification_sent(self, their_code, txn):
        """Record a notification we broadcast ourselves.

        Args:
            their_code (PaymentCode or str): Their payment code.
            txn (paycode.bitcoin.Transaction or Hash or str): The
                notification or its id.

        Returns:
            ChannelModel: The channel.

        Raises:
            PersistenceError: If saving fails. The channel is marked sent
                in memory regardless.

        """
        with self._lock:
            code = PaymentCode.parse(their_code)
            address = Account.from_payment_code(code, self.testnet).notification_address
            model = self._get_or_create(address, code)
            self._state_machine(model).notification_sent(getattr(txn, 'hash', txn))
            self.save()
            return model

    def send_notification(self, their_code, txn):
        """Broadcast a notification through the wallet and record it.

        Nothing is recorded when the broadcast raises.

        Args:
            their_code (PaymentCode or str): Their payment code.
            txn (paycode.bitcoin.Transaction): Signed notification whose
                outputs came from make_notification_outputs().

        Returns:
            str: Transaction id reported by the wallet.

        Raises:
            WalletError: If the broadcast fails.
            PersistenceError: If the broadcast succeeded but saving failed.

        """
        txid = self._wallet.broadcast_transaction(txn)
        self.mark_notification_sent(their_code, txn)
        return txid

    def import_channels(self, records):
        """Merge persisted channel records into the channel map.

        A record without notificationAddress has it derived from its
        paymentCode. Malformed records are logged and skipped.

        Args:
            records (list): List of records (dict).

        Returns:
            bool: True if any channel changed.

        """
        changed = False
        with self._lock:
            for record in records:
                try:
                    if not record.get('notificationAddress') and record.get('paymentCode'):
                        record = dict(record)
                        record['notificationAddress'] = Account.from_payment_code(
                            record['paymentCode'], self.testnet).notification_address
                    model = ChannelModel.from_dict(record)
                except (AttributeError, KeyError, TypeError, ValueError):
                    logger.exception("Skipping malformed channel record:")
                    continue

                if self._store.merge(model):
                    self._import_keys(model)
                    changed = True

        return changed

    def export_channels(self):
        """Get the persisted form of every channel.

        Returns:
            list: List of records (dict).

        """
        with self._lock:
            return self._store.to_records()

    def load(self):
        """Merge the database's channels into the channel map.

        Returns:
            bool: True if any channel changed.

        Raises:
            PersistenceError: If the database cannot be read.

        """
        with self._lock:
            with self._database.lock:
                records = self._database.load()
            return self.import_channels(records)

    def save(self):
        """Write every channel to the database.

        In-memory state is kept when writing fails.

        Raises:
            PersistenceError: If the database cannot be written.

        """
        with self._lock:
            records = self._store.to_records()
            with self._database.lock:
                self._database.save(records)
