"""Legacy (non-segwit) transactions: parsing, building, and signing and
verifying P2PKH inputs. Notification transactions are built and read
through these classes."""
import copy
import struct

from paycode.bitcoin.crypto import PublicKey
from paycode.bitcoin.crypto import Signature
from paycode.bitcoin.exceptions import InvalidTransactionError
from paycode.bitcoin.exceptions import InvalidTransactionInputError
from paycode.bitcoin.exceptions import InvalidTransactionOutputError
from paycode.bitcoin.hash import Hash
from paycode.bitcoin.script import Script
from paycode.bitcoin.utils import address_to_key_hash
from paycode.bitcoin.utils import bytes_to_str
from paycode.bitcoin.utils import pack_compact_int
from paycode.bitcoin.utils import pack_u32
from paycode.bitcoin.utils import pack_u64
from paycode.bitcoin.utils import pack_var_str
from paycode.bitcoin.utils import unpack_compact_int
from paycode.bitcoin.utils import unpack_u32
from paycode.bitcoin.utils import unpack_u64
from paycode.bitcoin.utils import unpack_var_str


class TransactionInput(object):
    """ A spend of a previous output.

    Args:
        outpoint (Hash): Hash of the transaction being spent.
        outpoint_index (int): Index of the spent output in it.
        script (Script): Signature script.
        sequence_num (int): Sequence number.
    """
    MAX_SEQUENCE = 0xffffffff

    @staticmethod
    def from_bytes(b):
        """ Parses one input off the front of b.

        Returns:
            tuple: (TransactionInput, remaining bytes).

        Raises:
            InvalidTransactionInputError: If b ends inside the input.
        """
        # 32 hash + 4 index + 1 script length + 4 sequence
        if len(b) < 41:
            raise InvalidTransactionInputError("Input is truncated.")

        outpoint = Hash(b[:32])
        index, rest = unpack_u32(b[32:])
        raw_script, rest = unpack_var_str(rest)
        if len(rest) < 4:
            raise InvalidTransactionInputError("Input script is truncated.")
        sequence, rest = unpack_u32(rest)

        return TransactionInput(outpoint, index, Script(raw_script), sequence), rest

    def __init__(self, outpoint, outpoint_index, script, sequence_num=MAX_SEQUENCE):
        if not isinstance(outpoint, Hash):
            raise TypeError("outpoint must be a Hash object.")
        self.outpoint = outpoint
        self.outpoint_index = outpoint_index
        self.script = script
        self.sequence_num = sequence_num

    def get_addresses(self, testnet=False):
        return self.script.get_addresses(testnet)

    def __str__(self):
        return "TransactionInput(%s:%d script=%s sequence=%d)" % (
            self.outpoint, self.outpoint_index, self.script, self.sequence_num)

    def __bytes__(self):
        return (bytes(self.outpoint) +
                pack_u32(self.outpoint_index) +
                pack_var_str(bytes(self.script)) +
                pack_u32(self.sequence_num))


class TransactionOutput(object):
    """ An amount locked by a script.

    Args:
        value (int): Amount in satoshis.
        script (Script): Output script.
    """

    @staticmethod
    def from_bytes(b):
        """ Parses one output off the front of b.

        Returns:
            tuple: (TransactionOutput, remaining bytes).

        Raises:
            InvalidTransactionOutputError: If b ends inside the output.
        """
        if len(b) < 9:
            raise InvalidTransactionOutputError("Output is truncated.")

        value, rest = unpack_u64(b)
        length, rest = unpack_compact_int(rest)
        if len(rest) < length:
            raise InvalidTransactionOutputError("Output script is truncated.")

        return TransactionOutput(value, Script(rest[:length])), rest[length:]

    def __init__(self, value, script):
        self.value = value
        self.script = script

    def get_addresses(self, testnet=False):
        return self.script.get_addresses(testnet)

    def __str__(self):
        return "TransactionOutput(%d satoshis script=%s)" % (self.value, self.script)

    def __bytes__(self):
        return pack_u64(self.value) + pack_var_str(bytes(self.script))


class Transaction(object):
    """ A version 1 style transaction.

    Args:
        version (int): Transaction version.
        inputs (list(TransactionInput)): Inputs, in order. The first one
            designates the sender of a notification.
        outputs (list(TransactionOutput)): Outputs, in order.
        lock_time (int): Lock time.
    """

    DEFAULT_TRANSACTION_VERSION = 1
    SIG_HASH_ALL = 0x01

    @staticmethod
    def from_bytes(b):
        """ Parses a transaction off the front of b.

        Returns:
            tuple: (Transaction, remaining bytes).

        Raises:
            InvalidTransactionError: If b is truncated or otherwise not a
                transaction.
        """
        try:
            version, rest = unpack_u32(b)

            inputs = []
            count, rest = unpack_compact_int(rest)
            for _ in range(count):
                inp, rest = TransactionInput.from_bytes(rest)
                inputs.append(inp)

            outputs = []
            count, rest = unpack_compact_int(rest)
            for _ in range(count):
                out, rest = TransactionOutput.from_bytes(rest)
                outputs.append(out)

            lock_time, rest = unpack_u32(rest)
        except (struct.error, IndexError, InvalidTransactionInputError,
                InvalidTransactionOutputError) as e:
            raise InvalidTransactionError("Unable to parse transaction: %s" % e)

        return Transaction(version, inputs, outputs, lock_time), rest

    @staticmethod
    def from_hex(h):
        return Transaction.from_bytes(bytes.fromhex(h))[0]

    def __init__(self, version, inputs, outputs, lock_time=0):
        self.version = version
        self.inputs = inputs
        self.outputs = outputs
        self.lock_time = lock_time

    @property
    def num_inputs(self):
        return len(self.inputs)

    @property
    def num_outputs(self):
        return len(self.outputs)

    def signature_hash(self, input_index, sub_script, hash_type=SIG_HASH_ALL):
        """ Legacy SIGHASH_ALL digest of an input.

        Every input script is blanked except the one being signed, which
        carries the script of the output it spends.

        Args:
            input_index (int): Input being signed.
            sub_script (Script): Script of the spent output.
            hash_type (int): Must be SIG_HASH_ALL.

        Returns:
            bytes: The 32-byte digest to sign.

        Raises:
            ValueError: On a bad index or hash type.
        """
        if not 0 <= input_index < len(self.inputs):
            raise ValueError("Invalid input index.")
        if hash_type != self.SIG_HASH_ALL:
            raise ValueError("Only SIG_HASH_ALL is supported.")

        stripped = copy.deepcopy(self)
        for i, inp in enumerate(stripped.inputs):
            inp.script = sub_script if i == input_index else Script(b"")

        return bytes(Hash.dhash(bytes(stripped) + pack_u32(hash_type)))

    def sign_input(self, input_index, hash_type, private_key, sub_script):
        """ Signs a P2PKH input in place.

        The public key goes into the signature script in whichever
        encoding (compressed or not) sub_script pays to.

        Args:
            input_index (int): Input to sign.
            hash_type (int): Signature hash type.
            private_key (PrivateKey): Key owning the spent output.
            sub_script (Script): Script of the spent output.

        Returns:
            bool: True once the input script is replaced.

        Raises:
            TypeError: If sub_script is not P2PKH.
            ValueError: If private_key does not own sub_script.
        """
        if not sub_script.is_p2pkh():
            raise TypeError("Only P2PKH inputs can be signed.")

        pub_key = private_key.public_key
        target = sub_script.get_hash160()
        if pub_key.hash160(True) == target:
            key_bytes = pub_key.compressed_bytes
        elif pub_key.hash160(False) == target:
            key_bytes = bytes(pub_key)
        else:
            raise ValueError("Address derived from private key does not match sub_script!")

        sig = private_key.sign(self.signature_hash(input_index, sub_script, hash_type), False)
        self.inputs[input_index].script = Script([sig.to_der() + pack_compact_int(hash_type), key_bytes])
        return True

    def verify_input_signature(self, input_index, sub_script):
        """ Whether the input carries a valid signature by the key that
        sub_script pays to.
        """
        try:
            sig_info = self.inputs[input_index].script.extract_sig_info()
        except TypeError:
            return False

        key_bytes = sig_info['public_key']
        pub_key = PublicKey.from_bytes(key_bytes)
        if pub_key.hash160(len(key_bytes) == 33) != sub_script.get_hash160():
            return False

        sig = Signature.from_der(sig_info['signature'][:-1])
        digest = self.signature_hash(input_index, sub_script, sig_info['hash_type'])
        return pub_key.verify(digest, sig, False)

    def output_index_for_address(self, address_or_hash160):
        """ Index of the first P2PKH output paying the given address (or
        key hash), or None.
        """
        if isinstance(address_or_hash160, str):
            h160 = address_to_key_hash(address_or_hash160)[1]
        elif isinstance(address_or_hash160, bytes):
            h160 = address_or_hash160
        else:
            raise TypeError("address_or_hash160 can only be bytes or str")

        for i, o in enumerate(self.outputs):
            if o.script.is_p2pkh() and o.script.get_hash160() == h160:
                return i
        return None

    def get_addresses(self, testnet=False):
        """ Addresses per input and per output.

        Returns:
            dict: 'inputs' and 'outputs', each a list holding one list of
                addresses per input or output.
        """
        return dict(inputs=[i.get_addresses(testnet) for i in self.inputs],
                    outputs=[o.get_addresses(testnet) for o in self.outputs])

    @property
    def hash(self):
        """ Transaction id. """
        return Hash.dhash(bytes(self))

    def to_hex(self):
        return bytes_to_str(bytes(self))

    def __str__(self):
        lines = ["Transaction %s (version %d, lock time %d)" % (self.hash, self.version, self.lock_time)]
        lines += ["  in:  %s" % i for i in self.inputs]
        lines += ["  out: %s" % o for o in self.outputs]
        return "\n".join(lines)

    def __bytes__(self):
        return (pack_u32(self.version) +
                pack_compact_int(len(self.inputs)) +
                b''.join(bytes(i) for i in self.inputs) +
                pack_compact_int(len(self.outputs)) +
                b''.join(bytes(o) for o in self.outputs) +
                pack_u32(self.lock_time))
