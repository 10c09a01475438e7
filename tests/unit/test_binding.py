"""
tests/unit/test_binding.py - TransactionProxy tests
"""

import pytest

from txlock.transactions import transactional


class Account:
    def __init__(self, owner):
        self.owner = owner
        self.balance = 0

    @transactional()
    async def deposit(self, amount):
        self.balance += amount
        return self.balance

    def describe(self):
        return f"{self.owner}: {self.balance}"


@pytest.fixture
def bound():
    """Account bound to a fresh transaction."""
    from txlock.transactions import Transaction

    transaction = Transaction("Test", "bind")
    account = Account("ana")
    return transaction, account, transaction.bind_to_transaction(account)


# =============================================================================
# PROXY TESTS
# =============================================================================

class TestTransactionProxy:
    """Test the transaction-aware view."""

    def test_reports_target_class(self, bound):
        """Test isinstance sees through the proxy."""
        from txlock.transactions import TransactionProxy

        transaction, account, proxy = bound

        assert isinstance(proxy, Account)
        assert type(proxy) is TransactionProxy
        assert proxy is not account

    def test_reads_pass_through(self, bound):
        """Test plain attributes come from the target."""
        transaction, account, proxy = bound

        assert proxy.owner == "ana"
        assert proxy.describe() == "ana: 0"

    def test_writes_reach_target(self, bound):
        """Test setattr and delattr go to the target."""
        transaction, account, proxy = bound

        proxy.balance = 10
        proxy.nickname = "a"
        assert account.balance == 10
        assert account.nickname == "a"

        del proxy.nickname
        assert not hasattr(account, "nickname")

    def test_transactional_methods_get_leading_transaction(self, bound):
        """Test transactional methods are wrapped with the transaction."""
        transaction, account, proxy = bound

        method = proxy.deposit
        assert method.__name__ == "deposit"
        assert method.__wrapped__.__self__ is account

    def test_registered_in_context_table(self, bound):
        """Test context_transaction finds the owning transaction."""
        from txlock.transactions import Transaction

        transaction, account, proxy = bound

        assert Transaction.context_transaction(proxy) is transaction
        assert Transaction.context_transaction(account) is None

    def test_string_form(self, bound):
        """Test str names the target and the transaction."""
        transaction, account, proxy = bound

        assert str(proxy) == f"Account proxy for transaction {transaction.id}"

    def test_rebinding_a_proxy_unwraps_it(self, bound):
        """Test binding a proxy again views the real object."""
        from txlock.transactions import Transaction
        from txlock.transactions.binding import unwrap

        transaction, account, proxy = bound
        other = Transaction("Other", "bind")

        again = other.bind_to_transaction(proxy)
        assert unwrap(again) is account
        assert Transaction.context_transaction(again) is other

    def test_continuation_binds_to_carrier(self):
        """Test objects bound by a chained transaction belong to the carrier."""
        from txlock.transactions import Transaction

        carrier = Transaction("Outer", "run")
        continuation = Transaction("Inner", "step")
        carrier.bind_transaction(continuation)

        proxy = continuation.bind_to_transaction(Account("bo"))
        assert Transaction.context_transaction(proxy) is carrier

    @pytest.mark.asyncio
    async def test_deposit_through_proxy(self, bound):
        """Test calling a transactional method through a proxy joins its transaction."""
        transaction, account, proxy = bound

        assert await proxy.deposit(5) == 5
        assert account.balance == 5
        assert len(transaction.logs) == 2
