"""Command-line interface for payment codes and channel state."""
import click
import collections
import json
import sys

from mnemonic import Mnemonic
from tabulate import tabulate

import paycode
from paycode.bip47 import addresses
from paycode.bip47 import notification
from paycode.bip47.account import Account
from paycode.bip47.exceptions import Bip47Error
from paycode.bitcoin.exceptions import DeserializationError
from paycode.bitcoin.txn import Transaction
from paycode.config import Config

from .database import JsonDatabase
from .statemachine import ChannelModel
from .statemachine import ChannelStatus

COLORS = {
    "red": "\x1b[1;31m",
    "green": "\x1b[1;32m",
    "reset": "\x1b[0m"
}


def format_status(status):
    """Colorize string representation of channel status.

    Args:
        status (ChannelStatus): Channel status.

    Returns:
        str: Colorized channel status.

    """
    if status == ChannelStatus.SENT:
        return COLORS['green'] + str(status) + COLORS['reset']
    return str(status)


def fail(ctx, message):
    """Print an error and exit with status 1."""
    if ctx.obj['json']:
        print(json.dumps({'error': message}))
    else:
        print("Error: " + message)
    sys.exit(1)


def load_account(ctx, mnemonic):
    if not Mnemonic("english").check(mnemonic):
        fail(ctx, "Invalid mnemonic.")
    try:
        return Account.from_mnemonic(mnemonic, testnet=ctx.obj['testnet'])
    except ValueError as e:
        fail(ctx, "Invalid mnemonic: {}".format(e))


@click.group('paycode', context_settings={'help_option_names': ['-h', '--help']})
@click.option("--json", is_flag=True, default=False, help="JSON output.")
@click.option("--testnet", is_flag=True, default=False, help="Use testnet addresses.")
@click.option("--config-file", default=paycode.PAYCODE_CONFIG_FILE, help="Config file path.")
@click.version_option(paycode.PAYCODE_VERSION, message=paycode.PAYCODE_VERSION_MESSAGE)
@click.pass_context
def main(ctx, json, testnet, config_file):
    """Work with BIP47 reusable payment codes.

    A payment code is published once. Each payer then notifies the payee
    with one transaction and pays a fresh address every time:

    $ paycode code "MNEMONIC"\n
    $ paycode notification-address PM8T...\n
    $ paycode address "MNEMONIC" PM8T... 0\n
    $ paycode decode "MNEMONIC" 0100000001...\n
    $ paycode channels
    """
    config = Config(config_file)
    ctx.obj = {'config': config, 'json': json, 'testnet': testnet or config.testnet}


@click.command('code', help="Show the payment code of a wallet.")
@click.pass_context
@click.argument('mnemonic', type=click.STRING)
def cli_code(ctx, mnemonic):
    """Show the payment code and notification address of a wallet.

    \b
    Args:
        mnemonic (str): BIP39 mnemonic of the wallet.

    """
    account = load_account(ctx, mnemonic)
    result = {'payment_code': str(account.payment_code),
              'notification_address': account.notification_address}

    if ctx.obj['json']:
        print(json.dumps(result))
    else:
        print("Payment code          {}".format(result['payment_code']))
        print("Notification address  {}".format(result['notification_address']))


@click.command('notification-address', help="Show the notification address of a payment code.")
@click.pass_context
@click.argument('payment_code', type=click.STRING)
def cli_notification_address(ctx, payment_code):
    """Show the address a payer notifies."""
    try:
        account = Account.from_payment_code(payment_code, ctx.obj['testnet'])
    except Bip47Error as e:
        fail(ctx, str(e))

    if ctx.obj['json']:
        print(json.dumps({'result': account.notification_address}))
    else:
        print(account.notification_address)


@click.command('decode', help="Decode a notification transaction.")
@click.pass_context
@click.argument('mnemonic', type=click.STRING)
@click.argument('tx_hex', type=click.STRING)
def cli_decode(ctx, mnemonic, tx_hex):
    """Recover the payer's payment code from a notification sent to us."""
    account = load_account(ctx, mnemonic)
    try:
        txn = Transaction.from_hex(tx_hex.strip())
        if not notification.is_notification_to(txn, account.notification_address):
            fail(ctx, "Transaction is not a notification to {}.".format(account.notification_address))
        code = notification.decode_notification(txn, account.notification_key)
    except (Bip47Error, DeserializationError, ValueError) as e:
        fail(ctx, str(e))

    if ctx.obj['json']:
        print(json.dumps({'result': str(code)}))
    else:
        print(code)


@click.command('address', help="Derive a payment address.")
@click.pass_context
@click.argument('mnemonic', type=click.STRING)
@click.argument('payment_code', type=click.STRING)
@click.argument('index', type=click.INT)
@click.option('--receive', default=False, is_flag=True,
              help="Derive the address the counterparty pays us at.")
def cli_address(ctx, mnemonic, payment_code, index, receive):
    """Derive the address of the index-th payment between two codes.

    \b
    Args:
        mnemonic (str): BIP39 mnemonic of our wallet.
        payment_code (str): Counterparty payment code.
        index (int): Payment index.
        receive (bool): Derive our receive address instead of the send
            address.

    """
    account = load_account(ctx, mnemonic)
    derive = addresses.receive_address if receive else addresses.send_address
    try:
        address = derive(account, payment_code, index)
    except Bip47Error as e:
        fail(ctx, str(e))

    if ctx.obj['json']:
        print(json.dumps({'result': address}))
    else:
        print(address)


@click.command('channels', help="List persisted channels.")
@click.pass_context
@click.option('--path', default=None, help="Channel file path.")
def cli_channels(ctx, path):
    """List the channels of a channel file."""
    db = JsonDatabase(path or ctx.obj['config'].channels_path)
    try:
        models = [ChannelModel.from_dict(r) for r in db.load()]
    except (Bip47Error, KeyError, ValueError) as e:
        fail(ctx, str(e))

    if ctx.obj['json']:
        print(json.dumps({'result': [m.to_dict() for m in models]}))
    elif len(models) == 0:
        print("No channels exist.")
    else:
        headers = ("Notification address", "Payment code", "Status", "Incoming", "Seen", "Next out")
        rows = []
        for m in models:
            code = str(m.payment_code) if m.payment_code else ""
            rows.append([m.notification_address,
                         code[:16] + "..." if code else "-",
                         format_status(m.status),
                         len(m.incoming_addresses),
                         len([a for a in m.incoming_addresses if a.seen]),
                         m.current_outgoing_index])
        print(tabulate(rows, headers, tablefmt="simple"))


main.commands = collections.OrderedDict()
main.list_commands = lambda ctx: main.commands
main.add_command(cli_code)
main.add_command(cli_notification_address)
main.add_command(cli_decode)
main.add_command(cli_address)
main.add_command(cli_channels)

if __name__ == "__main__":
    main()
