from credovae.models.user import User
from credovae.models.account import Account
from credovae.models.transaction import Transaction
from credovae.models.otp_code import OneTimeCode
from credovae.models.transfer_attempt import TransferAttempt
from credovae.models.message import Message

__all__ = ['User', 'Account', 'Transaction', 'OneTimeCode', 'TransferAttempt', 'Message']
