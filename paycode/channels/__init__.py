# flake8: noqa
"""Payment-code channels: per-counterparty state kept in step with the
transactions a wallet sees."""
from .client import ChannelClient
from .client import NotFoundError
from .statemachine import ChannelModel
from .statemachine import ChannelStatus
from .statemachine import ChannelStateMachine
from .statemachine import IncomingAddress
from .statemachine import StateTransitionError
from .database import ChannelStore
from .database import JsonDatabase
