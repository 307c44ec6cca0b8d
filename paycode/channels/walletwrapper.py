"""Describes the wallet the channel engine drives."""


class WalletError(Exception):
    """Base class for Wallet errors."""
    pass


class WalletWrapperBase:
    """Base class for a wallet interface."""

    def __init__(self):
        pass

    def import_watch_key(self, private_key):
        """Import a private key so payments to its address are tracked.

        Args:
            private_key (paycode.bitcoin.PrivateKey): Key to import.

        """
        raise NotImplementedError()

    def get_imported_keys(self):
        """Get every key imported with import_watch_key().

        Returns:
            list: List of paycode.bitcoin.PrivateKey.

        """
        raise NotImplementedError()

    def is_watched(self, address):
        """Check whether the wallet tracks address.

        Args:
            address (str): Base58Check address.

        Returns:
            bool: True if payments to address are tracked.

        """
        raise NotImplementedError()

    def watch_address(self, address):
        """Track payments to an address we hold no private key for.

        Args:
            address (str): Base58Check address.

        """
        raise NotImplementedError()

    def is_mine(self, txn_io):
        """Check whether an input spends, or an output pays, the wallet.

        Args:
            txn_io (TransactionInput or TransactionOutput): Input or output.

        Returns:
            bool: True if it belongs to the wallet.

        """
        raise NotImplementedError()

    def broadcast_transaction(self, transaction):
        """Broadcast a transaction to the network.

        Args:
            transaction (paycode.bitcoin.Transaction): Transaction object.

        Returns:
            str: Transaction ID (RPC byte order).

        """
        raise NotImplementedError()
