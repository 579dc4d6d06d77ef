from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest import mock
from credovae.errors import AlreadyResolved, InsufficientFunds, NotFound
from credovae.extensions import db
from credovae.models import Transaction
from credovae.services import approval_service, transfer_service
from tests.base import BankTestCase


class ApprovalTestCase(BankTestCase):
    def setUp(self):
        super().setUp()
        self.user, self.account = self.make_user(balance='100.00')

    def pending_transfer(self, amount='40.00'):
        attempt = transfer_service.initiate(self.user, self.transfer_details(amount=amount))
        return transfer_service.complete(attempt.attempt_id, self.user, self.mailer.last_code())


class TestApproveReject(ApprovalTestCase):
    def test_approve_keeps_debit(self):
        txn = self.pending_transfer('40.00')

        approved = approval_service.approve(str(txn.transaction_id))

        self.assertEqual(approved.status, 'SUCCESSFUL')
        self.assertEqual(self.balance_of(self.account.account_id), Decimal('60.00'))

    def test_reject_refunds_outgoing(self):
        txn = self.pending_transfer('40.00')
        self.assertEqual(self.balance_of(self.account.account_id), Decimal('60.00'))

        rejected = approval_service.reject(str(txn.transaction_id))

        self.assertEqual(rejected.status, 'REJECTED')
        self.assertEqual(self.balance_of(self.account.account_id), Decimal('100.00'))

    def test_resolved_transaction_cannot_change_again(self):
        txn = self.pending_transfer()
        approval_service.approve(txn.transaction_id)

        with self.assertRaises(AlreadyResolved):
            approval_service.approve(txn.transaction_id)
        with self.assertRaises(AlreadyResolved):
            approval_service.reject(txn.transaction_id)

        # A late reject must not refund an approved transfer
        self.assertEqual(self.balance_of(self.account.account_id), Decimal('60.00'))

    def test_double_reject_refunds_once(self):
        txn = self.pending_transfer()
        approval_service.reject(txn.transaction_id)

        with self.assertRaises(AlreadyResolved):
            approval_service.reject(txn.transaction_id)
        self.assertEqual(self.balance_of(self.account.account_id), Decimal('100.00'))

    def test_unknown_transaction(self):
        with self.assertRaises(NotFound):
            approval_service.approve('7d6f3c3a-3c1e-4d8e-9a55-0d1f7f0f4b11')
        with self.assertRaises(NotFound):
            approval_service.reject('not-a-uuid')

    def test_reject_incoming_leaves_balance(self):
        txn = approval_service.simulate_transaction(
            str(self.account.account_id), 'INCOMING', '25.00', 'Salary'
        )
        self.assertEqual(self.balance_of(self.account.account_id), Decimal('100.00'))

        approval_service.reject(txn.transaction_id)

        self.assertEqual(self.balance_of(self.account.account_id), Decimal('100.00'))

    def test_admin_notices_recorded(self):
        txn = self.pending_transfer()
        approval_service.reject(txn.transaction_id)

        messages = [n['message'] for n in self.app.extensions['notice_board'].list()]
        self.assertEqual(messages[0], f"Transaction {txn.transaction_id} rejected. Amount refunded to user.")
        self.assertTrue(any('awaiting approval' in m for m in messages))


class TestListing(ApprovalTestCase):
    def test_pending_listed_newest_first(self):
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        for minutes in (0, 1, 2):
            with mock.patch('credovae.services.transfer_service.utcnow',
                            return_value=base + timedelta(minutes=minutes)):
                self.pending_transfer('10.00')

        pending = approval_service.list_pending()

        self.assertEqual(len(pending), 3)
        stamps = [t.created_at for t in pending]
        self.assertEqual(stamps, sorted(stamps, reverse=True))

    def test_resolved_drop_out_of_pending(self):
        first = self.pending_transfer('10.00')
        self.pending_transfer('10.00')
        approval_service.approve(first.transaction_id)

        pending = approval_service.list_pending()

        self.assertEqual(len(pending), 1)
        self.assertNotEqual(pending[0].transaction_id, first.transaction_id)

    def test_list_transactions_filters_and_paginates(self):
        for _ in range(3):
            self.pending_transfer('5.00')
        approval_service.simulate_transaction(self.account.account_id, 'INCOMING', '1.00')

        outgoing = approval_service.list_transactions(type='outgoing', per_page=2)
        self.assertEqual(len(outgoing['data']), 2)
        self.assertEqual(outgoing['pagination']['total'], 3)
        self.assertEqual(outgoing['pagination']['total_pages'], 2)

        incoming = approval_service.list_transactions(type='INCOMING')
        self.assertEqual(incoming['pagination']['total'], 1)


class TestStats(ApprovalTestCase):
    def test_stats_recomputed_from_transactions(self):
        first = self.pending_transfer('40.00')
        second = self.pending_transfer('10.00')
        incoming = approval_service.simulate_transaction(self.account.account_id, 'INCOMING', '15.00')

        stats = approval_service.get_stats(self.account.account_id)
        self.assertEqual(stats['outgoing_total'], Decimal('0'))
        self.assertEqual(stats['pending_count'], 3)

        approval_service.approve(first.transaction_id)
        approval_service.reject(second.transaction_id)
        approval_service.approve(incoming.transaction_id)

        stats = approval_service.get_stats(self.account.account_id)
        self.assertEqual(stats['outgoing_total'], Decimal('40.00'))
        self.assertEqual(stats['incoming_total'], Decimal('15.00'))
        self.assertEqual(stats['pending_count'], 0)
        self.assertEqual(stats['transaction_count'], 3)

    def test_admin_stats_counts(self):
        first = self.pending_transfer('10.00')
        second = self.pending_transfer('10.00')
        self.pending_transfer('10.00')
        approval_service.approve(first.transaction_id)
        approval_service.reject(second.transaction_id)

        stats = approval_service.get_admin_stats()

        self.assertEqual(stats['pending_count'], 1)
        self.assertEqual(stats['successful_count'], 1)
        self.assertEqual(stats['rejected_count'], 1)
        self.assertEqual(stats['approved_today_count'], 1)

        as_json = approval_service.stats_to_dict(stats)
        self.assertIsInstance(as_json['outgoing_total'], float)


class TestSimulate(ApprovalTestCase):
    def test_simulated_outgoing_debits_immediately(self):
        txn = approval_service.simulate_transaction(
            str(self.account.account_id), 'OUTGOING', '30.00'
        )

        self.assertEqual(txn.status, 'PENDING')
        self.assertEqual(txn.type, 'OUTGOING')
        self.assertEqual(self.balance_of(self.account.account_id), Decimal('70.00'))

    def test_simulated_outgoing_over_balance(self):
        with self.assertRaises(InsufficientFunds):
            approval_service.simulate_transaction(self.account.account_id, 'OUTGOING', '300.00')
        self.assertEqual(db.session.query(Transaction).count(), 0)

    def test_unknown_type_defaults_to_incoming(self):
        txn = approval_service.simulate_transaction(self.account.account_id, 'sideways', '5')
        self.assertEqual(txn.type, 'INCOMING')

    def test_unknown_account(self):
        with self.assertRaises(NotFound):
            approval_service.simulate_transaction(
                '7d6f3c3a-3c1e-4d8e-9a55-0d1f7f0f4b11', 'INCOMING', '5'
            )
