# 3rd party imports
import pytest

# paycode imports
import paycode
from paycode.bip47 import Account
from tests.bip47.vectors import ALICE_MNEMONIC
from tests.bip47.vectors import BOB_MNEMONIC


def pytest_configure(config):
    """ Register all markers here """
    config.addinivalue_line("markers", "unit: mark a test as a unit test.")


def pytest_report_header(config):
    """ Adds the paycode version to the report header """
    return "paycode: {}".format(paycode.PAYCODE_VERSION)


@pytest.fixture(scope="session")
def alice():
    return Account.from_mnemonic(ALICE_MNEMONIC)


@pytest.fixture(scope="session")
def bob():
    return Account.from_mnemonic(BOB_MNEMONIC)


@pytest.fixture(scope="session")
def carol():
    return Account.from_mnemonic("abandon abandon abandon abandon abandon abandon "
                                 "abandon abandon abandon abandon abandon about")
