"""Describes the chain view the channel engine asks for rescans."""


class BlockchainError(Exception):
    """Base class for Blockchain errors."""
    pass


class BlockchainBase:
    """Base class for a Blockchain interface."""

    def __init__(self):
        pass

    def current_height(self):
        """Get the height of the best block.

        Returns:
            int: Block height.

        """
        raise NotImplementedError()

    def rollback_to(self, height):
        """Rewind the chain view so blocks above height are scanned again.

        Args:
            height (int): Block height to rewind to.

        Raises:
            BlockchainError: If the view cannot be rewound to height.

        """
        raise NotImplementedError()
