from typing import NamedTuple
from hathor import (
    Address,
    Blueprint,
    Context,
    NCDepositAction,
    NCWithdrawalAction,
    NCFail,
    TokenUid,
    export,
    public,
    view,
)

#
# === TIMELOCK WALLET BLUEPRINT ===
#
# Single-owner custodial wallet nano-contract. HTR deposited into the contract
# can only be withdrawn by the owner, in full, once the unlock time is reached.
#
# Features:
# - Two-step lifecycle: contract creation, then a one-time init() that records
#   the caller as owner together with the unlock timestamp
# - Open deposits (anyone may top the wallet up, zero-amount deposits allowed)
# - All-or-nothing, time-gated, owner-only withdrawals
# - Monotonic lock extension (the unlock time can only move later)
# - Deposit / Withdrawal events plus website-friendly views and counters
#
# === TOKEN CONSTANTS ===
#

HTR_UID = TokenUid(b"\x00")


#
# === EVENT NAMES ===
#

EVENT_INITIALIZED = "Initialized"
EVENT_DEPOSIT = "Deposit"
EVENT_WITHDRAWAL = "Withdrawal"
EVENT_LOCK_EXTENDED = "LockExtended"

# Withdrawals are paid to the calling tx outputs, not to the declared `to`.
SETTLED_IN_TX_OUTPUTS = "tx_outputs"


#
# === VIEW RETURN TYPES (JSON-friendly) ===
#

class WalletView(NamedTuple):
    owner: str                  # base58 string or "" before init
    unlock_timestamp: int
    balance: int
    initialized: bool
    is_unlocked: bool
    seconds_until_unlock: int


class CountersView(NamedTuple):
    total_deposited: int
    total_withdrawn: int
    deposit_count: int
    withdrawal_count: int
    extension_count: int


#
# === CUSTOM FAIL TYPES ===
#

class TimelockError(NCFail):
    """Base class for timelock wallet failures."""


class AlreadyInitialized(TimelockError):
    """init() was called on a wallet that already has an owner."""


class NotInitialized(TimelockError):
    """The wallet has not been initialized yet."""


class NotOwner(TimelockError):
    """Caller is not the wallet owner."""


class FundsLocked(TimelockError):
    """Withdrawal attempted before the unlock time."""


class ZeroBalance(TimelockError):
    """Withdrawal attempted with nothing to send."""


class LockNotExtended(TimelockError):
    """New unlock time does not exceed the current one."""


class InvalidTimestamp(TimelockError):
    """Timestamps are unsigned seconds since epoch."""


class InvalidCaller(TimelockError):
    """Caller identity is not available."""


class InvalidActions(TimelockError):
    """Invalid deposit/withdrawal actions."""


@export
class TimelockWallet(Blueprint):
    """
    Custodial wallet whose HTR balance unlocks for its owner at a given time.

    Lifecycle:
      - initialize(): contract creation, the wallet starts uninitialized
      - init(unlock_timestamp): one-time setup, caller becomes the owner
      - afterwards the wallet stays active for the lifetime of the contract

    Gates:
      - deposit() is open to any caller once initialized
      - withdraw() and extend_lock() are owner-only
      - withdraw() additionally requires block timestamp >= unlock timestamp
    """

 # === Account state ===
    owner_address: Address
    unlock_timestamp: int
    balance: int
    initialized: bool

 # === Counters (website stats) ===
    total_deposited: int
    total_withdrawn: int
    deposit_count: int
    withdrawal_count: int
    extension_count: int

 #
 # === INITIALIZE ===
 #

    @public
    def initialize(self, ctx: Context) -> None:
        """Contract creation. The owner is only recorded by init()."""
        self.initialized = False
        self.unlock_timestamp = 0
        self.balance = 0

        self.total_deposited = 0
        self.total_withdrawn = 0
        self.deposit_count = 0
        self.withdrawal_count = 0
        self.extension_count = 0

    @public
    def init(self, ctx: Context, unlock_timestamp: int) -> None:
        """
        One-time setup: records the caller as owner and sets the unlock time.

        No bound is placed on unlock_timestamp relative to the current block;
        a timestamp in the past makes the wallet immediately unlockable.
        """
        if self.initialized:
            raise AlreadyInitialized("Wallet is already initialized")
        self._assert_valid_timestamp(unlock_timestamp)

        owner = ctx.get_caller_address()
        if owner is None:
            raise InvalidCaller("Caller identity is not available")

        self.owner_address = owner
        self.unlock_timestamp = unlock_timestamp
        self.balance = 0
        self.initialized = True

        self.log.info("wallet initialized", owner=str(owner), unlock_timestamp=unlock_timestamp)
        self._emit(
            f'{{"event":"{EVENT_INITIALIZED}","owner":"{owner}","unlock_timestamp":{unlock_timestamp}}}'
        )

 #
 # === INTERNAL HELPERS ===
 #

    def _assert_initialized(self) -> None:
        if not self.initialized:
            raise NotInitialized("Wallet is not initialized")

    def _assert_owner(self, ctx: Context) -> None:
        if ctx.get_caller_address() != self.owner_address:
            raise NotOwner("Only the wallet owner can perform this operation")

    def _assert_valid_timestamp(self, timestamp: int) -> None:
        if timestamp < 0:
            raise InvalidTimestamp("Timestamp must be >= 0")

    def _deposit_amount(self, ctx: Context) -> int:
        """Amount of HTR attached to this call; no action is a zero deposit."""
        if len(ctx.actions) == 0:
            return 0
        if set(ctx.actions.keys()) != {HTR_UID}:
            raise InvalidActions("Deposit must only include HTR")

        action = ctx.get_single_action(HTR_UID)
        if not isinstance(action, NCDepositAction):
            raise InvalidActions("Expected a deposit action")
        return action.amount

    def _process_withdraw(self, ctx: Context, expected_amount: int) -> None:
        """Validate that this call withdraws exactly expected_amount of HTR."""
        if set(ctx.actions.keys()) != {HTR_UID}:
            raise InvalidActions("Withdraw must operate on HTR only")

        action = ctx.get_single_action(HTR_UID)
        if not isinstance(action, NCWithdrawalAction):
            raise InvalidActions("Expected a withdrawal action")
        if action.amount != expected_amount:
            raise InvalidActions("Withdrawal must take the full balance")

    def _seconds_until_unlock(self, current_timestamp: int) -> int:
        if current_timestamp >= self.unlock_timestamp:
            return 0
        return self.unlock_timestamp - current_timestamp

    def _emit(self, payload: str) -> None:
        self.syscall.emit_event(payload.encode("utf-8"))

 #
 # === DEPOSIT (ANY CALLER) ===
 #

    @public(allow_deposit=True)
    def deposit(self, ctx: Context) -> None:
        """Adds the attached HTR to the wallet balance."""
        self._assert_initialized()

        amount = self._deposit_amount(ctx)
        sender = ctx.get_caller_address()

        self.balance += amount
        self.total_deposited += amount
        self.deposit_count += 1

        sender_str = "" if sender is None else str(sender)
        self.log.info("deposit", sender=sender_str, amount=amount, balance=self.balance)
        self._emit(f'{{"event":"{EVENT_DEPOSIT}","from":"{sender_str}","amount":{amount}}}')

 #
 # === WITHDRAW (OWNER-ONLY, AFTER UNLOCK) ===
 #

    @public(allow_withdrawal=True)
    def withdraw(self, ctx: Context, to: Address) -> None:
        """
        Sends the entire balance out of the wallet.

        Checks run in a fixed order so callers can tell the failures apart:
        NotInitialized, NotOwner, FundsLocked, ZeroBalance.

        The withdrawn HTR goes to the outputs of the calling transaction, which
        the owner builds. `to` is only the recipient the owner declares; the
        Withdrawal event marks it as declared and settled in the tx outputs.
        """
        self._assert_initialized()
        self._assert_owner(ctx)

        now = ctx.block.timestamp
        if now < self.unlock_timestamp:
            raise FundsLocked(f"Funds are locked until {self.unlock_timestamp}")

        amount = self.balance
        if amount == 0:
            raise ZeroBalance("Nothing to withdraw")

 # Balance is cleared before the withdrawal action is honoured.
        self.balance = 0
        self.total_withdrawn += amount
        self.withdrawal_count += 1

        self._process_withdraw(ctx, amount)

        self.log.info("withdrawal settled in tx outputs", declared_to=str(to), amount=amount)
        self._emit(
            f'{{"event":"{EVENT_WITHDRAWAL}","to":"{to}","amount":{amount},"settled_in":"{SETTLED_IN_TX_OUTPUTS}"}}'
        )

 #
 # === EXTEND LOCK (OWNER-ONLY) ===
 #

    @public
    def extend_lock(self, ctx: Context, new_unlock_timestamp: int) -> None:
        """Owner-only: move the unlock time strictly later."""
        self._assert_initialized()
        self._assert_owner(ctx)

 # unlock_timestamp is never negative, so this also rejects negative values.
        old_unlock_timestamp = self.unlock_timestamp
        if new_unlock_timestamp <= old_unlock_timestamp:
            raise LockNotExtended("New unlock timestamp must be greater than the current one")

        self.unlock_timestamp = new_unlock_timestamp
        self.extension_count += 1

        self.log.info("lock extended", old=old_unlock_timestamp, new=new_unlock_timestamp)
        self._emit(
            f'{{"event":"{EVENT_LOCK_EXTENDED}","old":{old_unlock_timestamp},"new":{new_unlock_timestamp}}}'
        )

 #
 # === VIEWS ===
 #

    @view
    def owner(self) -> Address:
        self._assert_initialized()
        return self.owner_address

    @view
    def unlock_time(self) -> int:
        self._assert_initialized()
        return self.unlock_timestamp

    @view
    def is_initialized(self) -> bool:
        return self.initialized

    @view
    def get_balance(self) -> int:
        return self.balance

    @view
    def is_unlocked(self, current_timestamp: int) -> bool:
        """
        True if an owner withdrawal at current_timestamp passes the time gate.

        NOTE: @view cannot access Context, so caller must pass current_timestamp.
        """
        if not self.initialized:
            return False
        return current_timestamp >= self.unlock_timestamp

    @view
    def seconds_until_unlock(self, current_timestamp: int) -> int:
        """Seconds left until the unlock time, 0 once unlocked or before init."""
        if not self.initialized:
            return 0
        return self._seconds_until_unlock(current_timestamp)

    @view
    def get_wallet(self, current_timestamp: int) -> WalletView:
        """Safe, JSON-friendly snapshot of the wallet."""
        if not self.initialized:
            return WalletView(
                owner="",
                unlock_timestamp=0,
                balance=self.balance,
                initialized=False,
                is_unlocked=False,
                seconds_until_unlock=0,
            )

        return WalletView(
            owner=str(self.owner_address),
            unlock_timestamp=self.unlock_timestamp,
            balance=self.balance,
            initialized=True,
            is_unlocked=current_timestamp >= self.unlock_timestamp,
            seconds_until_unlock=self._seconds_until_unlock(current_timestamp),
        )

    @view
    def get_counters(self) -> CountersView:
        """Return lightweight counters suitable for website stats."""
        return CountersView(
            total_deposited=self.total_deposited,
            total_withdrawn=self.total_withdrawn,
            deposit_count=self.deposit_count,
            withdrawal_count=self.withdrawal_count,
            extension_count=self.extension_count,
        )
