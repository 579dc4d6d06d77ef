from decimal import Decimal
from credovae.extensions import db
from credovae.models import Account, User
from tests.base import BankTestCase


class TestAuthApi(BankTestCase):
    def test_health(self):
        resp = self.client.get('/health')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()['status'], 'healthy')

    def test_first_login_opens_account(self):
        self.make_user(email='new@example.com', balance=None)

        resp = self.client.post('/api/auth/login', json={'email': 'NEW@example.com', 'password': 'password123'})

        self.assertEqual(resp.status_code, 200)
        account = resp.get_json()['account']
        self.assertEqual(account['balance'], 5000.0)
        self.assertRegex(account['account_number'], r'^ACC\d{10}$')

        # Second login reuses the same account
        again = self.client.post('/api/auth/login', json={'email': 'new@example.com', 'password': 'password123'})
        self.assertEqual(again.get_json()['account']['account_id'], account['account_id'])

    def test_bad_credentials(self):
        self.make_user()
        resp = self.client.post('/api/auth/login', json={'email': 'alice@example.com', 'password': 'wrong'})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.get_json()['error_code'], 'UNAUTHORIZED')

        resp = self.client.post('/api/auth/login', json={'email': 'alice@example.com'})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['details']['fields'], ['password'])

    def test_deactivated_user_cannot_login(self):
        user, _ = self.make_user()
        user.is_active = False
        db.session.commit()

        resp = self.client.post('/api/auth/login', json={'email': 'alice@example.com', 'password': 'password123'})
        self.assertEqual(resp.status_code, 403)

    def test_admin_login_rejects_plain_users(self):
        self.make_user()
        resp = self.client.post('/api/auth/admin/login', json={'email': 'alice@example.com', 'password': 'password123'})
        self.assertEqual(resp.status_code, 401)

    def test_logout_revokes_token(self):
        self.make_user()
        headers = self.login('alice@example.com')
        self.assertEqual(len(self.app.extensions['sessions']), 1)

        self.assertEqual(self.client.get('/api/auth/me', headers=headers).status_code, 200)
        self.assertEqual(self.client.post('/api/auth/logout', headers=headers).status_code, 200)

        self.assertEqual(self.client.get('/api/auth/me', headers=headers).status_code, 401)
        self.assertEqual(len(self.app.extensions['sessions']), 0)

    def test_missing_token(self):
        self.assertEqual(self.client.get('/accounts/me').status_code, 401)


class TestTransferApi(BankTestCase):
    def setUp(self):
        super().setUp()
        self.user, self.account = self.make_user(balance='100.00')
        self.make_user(email='admin@example.com', role='admin', balance=None)
        self.headers = self.login('alice@example.com')

    def start_transfer(self, **overrides):
        resp = self.client.post('/transfers', json=self.transfer_details(**overrides), headers=self.headers)
        self.assertEqual(resp.status_code, 201, resp.get_json())
        return resp.get_json()['transfer']['attempt_id']

    def test_transfer_then_reject_refunds(self):
        attempt_id = self.start_transfer(amount='40.00')

        resp = self.client.post(
            f'/transfers/{attempt_id}/complete',
            json={'otp_code': self.mailer.last_code()},
            headers=self.headers,
        )
        self.assertEqual(resp.status_code, 201)
        txn = resp.get_json()['transaction']
        self.assertEqual(txn['status'], 'PENDING')
        self.assertEqual(self.client.get('/accounts/me', headers=self.headers).get_json()['balance'], 60.0)

        admin = self.login('admin@example.com', admin=True)
        pending = self.client.get('/admin/transactions/pending', headers=admin).get_json()['data']
        self.assertEqual([t['transaction_id'] for t in pending], [txn['transaction_id']])

        resp = self.client.post(f"/admin/transactions/{txn['transaction_id']}/reject", headers=admin)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()['data']['status'], 'REJECTED')
        self.assertEqual(self.balance_of(self.account.account_id), Decimal('100.00'))

        resp = self.client.post(f"/admin/transactions/{txn['transaction_id']}/approve", headers=admin)
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.get_json()['error_code'], 'ALREADY_RESOLVED')

    def test_transfer_over_balance(self):
        resp = self.client.post('/transfers', json=self.transfer_details(amount='150'), headers=self.headers)
        self.assertEqual(resp.status_code, 402)
        self.assertEqual(resp.get_json()['error_code'], 'INSUFFICIENT_FUNDS')
        self.assertEqual(self.mailer.sent, [])

    def test_validate_endpoint(self):
        resp = self.client.post(
            '/transfers/validate',
            json=self.transfer_details(recipient_country='gb', routing_code='12-34-56'),
            headers=self.headers,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()['details']['recipient_country'], 'GB')

        resp = self.client.post(
            '/transfers/validate', json=self.transfer_details(routing_code='1'), headers=self.headers
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['error_code'], 'INVALID_ROUTING_CODE')

    def test_wrong_code_reports_attempts_left(self):
        attempt_id = self.start_transfer()
        code = self.mailer.last_code()
        wrong = '000000' if code != '000000' else '111111'

        resp = self.client.post(f'/transfers/{attempt_id}/complete', json={'otp_code': wrong}, headers=self.headers)

        self.assertEqual(resp.status_code, 400)
        body = resp.get_json()
        self.assertEqual(body['error_code'], 'OTP_INVALID')
        self.assertEqual(body['details']['attempts_remaining'], 2)

        resp = self.client.post(f'/transfers/{attempt_id}/complete', json={}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['error_code'], 'MISSING_FIELD')

    def test_delivery_failure_is_502(self):
        self.mailer.fail = True
        resp = self.client.post('/transfers', json=self.transfer_details(), headers=self.headers)
        self.assertEqual(resp.status_code, 502)
        self.assertEqual(resp.get_json()['error_code'], 'DELIVERY_FAILURE')

    def test_cancel(self):
        attempt_id = self.start_transfer()
        resp = self.client.post(f'/transfers/{attempt_id}/cancel', headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()['transfer']['state'], 'ABANDONED')

        resp = self.client.post(f'/transfers/{attempt_id}/cancel', headers=self.headers)
        self.assertEqual(resp.status_code, 409)

    def test_dashboard_and_history(self):
        attempt_id = self.start_transfer(amount='25.00')
        self.client.post(
            f'/transfers/{attempt_id}/complete', json={'otp_code': self.mailer.last_code()}, headers=self.headers
        )

        dashboard = self.client.get('/accounts/me/dashboard', headers=self.headers).get_json()
        self.assertEqual(dashboard['account']['balance'], 75.0)
        self.assertEqual(dashboard['stats']['pending_count'], 1)
        self.assertEqual(len(dashboard['recent_transactions']), 1)

        outgoing = self.client.get('/accounts/me/transactions?filter=OUTGOING', headers=self.headers)
        self.assertEqual(len(outgoing.get_json()), 1)
        incoming = self.client.get('/accounts/me/transactions?filter=INCOMING', headers=self.headers)
        self.assertEqual(incoming.get_json(), [])
        bad = self.client.get('/accounts/me/transactions?filter=bogus', headers=self.headers)
        self.assertEqual(bad.status_code, 400)

    def test_balance_updates_without_watcher_thread(self):
        resp = self.client.get('/accounts/me/balance-updates', headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json(), {'balance': 100.0, 'changed': False})

    def test_numeric_routing_code_is_accepted(self):
        details = self.transfer_details(routing_code=121000358)
        resp = self.client.post('/transfers/validate', json=details, headers=self.headers)

        self.assertEqual(resp.status_code, 200, resp.get_json())
        self.assertEqual(resp.get_json()['details']['routing_code'], '121000358')

    def test_oversized_amount_is_a_typed_error(self):
        resp = self.client.post(
            '/transfers/validate', json=self.transfer_details(amount='1e30'), headers=self.headers
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['error_code'], 'INVALID_AMOUNT')

    def test_non_object_body(self):
        resp = self.client.post('/transfers', json=['US', 40], headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['error_code'], 'MISSING_FIELD')

    def test_user_edits_own_name(self):
        resp = self.client.patch('/api/auth/me', json={'name': '  Alice Cooper '}, headers=self.headers)

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()['user']['name'], 'Alice Cooper')
        me = self.client.get('/api/auth/me', headers=self.headers).get_json()
        self.assertEqual(me['user']['name'], 'Alice Cooper')

        resp = self.client.patch('/api/auth/me', json={'name': '   '}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['details']['fields'], ['name'])

        resp = self.client.patch('/api/auth/me', json={'name': 'x' * 256}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)

    def test_countries(self):
        resp = self.client.get('/transfers/countries')
        self.assertEqual(resp.status_code, 200)
        self.assertIn('US', [r['country'] for r in resp.get_json()])


class TestAdminApi(BankTestCase):
    def setUp(self):
        super().setUp()
        self.user, self.account = self.make_user(balance='100.00')
        self.admin, _ = self.make_user(email='admin@example.com', role='admin', balance=None)
        self.master, _ = self.make_user(email='root@example.com', role='master_admin', balance=None)

    def test_user_token_forbidden_on_admin_routes(self):
        headers = self.login('alice@example.com')
        for path in ('/admin/transactions', '/admin/transactions/stats', '/admin/users'):
            resp = self.client.get(path, headers=headers)
            self.assertEqual(resp.status_code, 403, path)

    def test_role_checked_against_store_on_every_request(self):
        headers = self.login('admin@example.com', admin=True)
        self.assertEqual(self.client.get('/admin/users', headers=headers).status_code, 200)

        admin = db.session.get(User, self.admin.user_id)
        admin.role = 'user'
        db.session.commit()

        # Token still claims admin, stored role wins
        self.assertEqual(self.client.get('/admin/users', headers=headers).status_code, 403)

    def test_admin_does_not_see_master_admin(self):
        headers = self.login('admin@example.com', admin=True)
        emails = [u['email'] for u in self.client.get('/admin/users', headers=headers).get_json()['data']]
        self.assertIn('alice@example.com', emails)
        self.assertNotIn('root@example.com', emails)

        resp = self.client.get(f'/admin/users/{self.master.user_id}', headers=headers)
        self.assertEqual(resp.status_code, 404)

        master = self.login('root@example.com', admin=True)
        emails = [u['email'] for u in self.client.get('/admin/users', headers=master).get_json()['data']]
        self.assertIn('root@example.com', emails)

    def test_create_user_role_forced_for_admin(self):
        headers = self.login('admin@example.com', admin=True)
        resp = self.client.post('/admin/users', headers=headers, json={
            'email': 'Carol@Example.com', 'name': 'Carol', 'password': 'longenough', 'role': 'admin',
            'balance': 250,
        })
        self.assertEqual(resp.status_code, 201)
        data = resp.get_json()['data']
        self.assertEqual(data['role'], 'user')
        self.assertEqual(data['email'], 'carol@example.com')
        self.assertEqual(data['balance'], 250.0)

        again = self.client.post('/admin/users', headers=headers, json={
            'email': 'carol@example.com', 'name': 'Carol', 'password': 'longenough',
        })
        self.assertEqual(again.status_code, 409)

    def test_master_admin_may_assign_roles(self):
        headers = self.login('root@example.com', admin=True)
        resp = self.client.post('/admin/users', headers=headers, json={
            'email': 'dave@example.com', 'name': 'Dave', 'password': 'longenough', 'role': 'admin',
        })
        self.assertEqual(resp.get_json()['data']['role'], 'admin')

    def test_credit_and_debit(self):
        headers = self.login('admin@example.com', admin=True)
        base = f'/admin/users/{self.user.user_id}'

        resp = self.client.post(f'{base}/credit', json={'amount': 50}, headers=headers)
        self.assertEqual(resp.get_json()['data']['balance'], 150.0)

        resp = self.client.post(f'{base}/debit', json={'amount': 500}, headers=headers)
        self.assertEqual(resp.status_code, 402)

        resp = self.client.post(f'{base}/debit', json={'amount': -5}, headers=headers)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.balance_of(self.account.account_id), Decimal('150.00'))

    def test_toggle_and_delete(self):
        headers = self.login('admin@example.com', admin=True)
        user_id = self.user.user_id

        resp = self.client.post(f'/admin/users/{self.user.user_id}/toggle-active', headers=headers)
        self.assertFalse(resp.get_json()['data']['is_active'])

        resp = self.client.post(f'/admin/users/{self.admin.user_id}/toggle-active', headers=headers)
        self.assertEqual(resp.status_code, 409)

        resp = self.client.delete(f'/admin/users/{user_id}', headers=headers)
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(db.session.get(User, user_id))
        self.assertEqual(Account.query.count(), 0)

    def test_messages(self):
        admin = self.login('admin@example.com', admin=True)
        resp = self.client.post(
            f'/admin/users/{self.user.user_id}/messages', json={'message_text': 'Hello'}, headers=admin
        )
        self.assertEqual(resp.status_code, 201)

        user = self.login('alice@example.com')
        self.assertEqual(self.client.get('/messages/unread-count', headers=user).get_json()['unread_count'], 1)
        messages = self.client.get('/messages', headers=user).get_json()
        self.assertEqual([m['message_text'] for m in messages], ['Hello'])
        self.assertEqual(self.client.get('/messages/unread-count', headers=user).get_json()['unread_count'], 0)

    def test_simulate_and_stats(self):
        headers = self.login('admin@example.com', admin=True)
        resp = self.client.post('/admin/transactions/simulate', headers=headers, json={
            'account_id': str(self.account.account_id), 'type': 'INCOMING', 'amount': 20,
        })
        self.assertEqual(resp.status_code, 201)
        txn_id = resp.get_json()['data']['transaction_id']

        self.client.post(f'/admin/transactions/{txn_id}/approve', headers=headers)

        stats = self.client.get('/admin/transactions/stats', headers=headers).get_json()['data']
        self.assertEqual(stats['incoming_total'], 20.0)
        self.assertEqual(stats['successful_count'], 1)

        listing = self.client.get('/admin/transactions?status=SUCCESSFUL', headers=headers).get_json()
        self.assertEqual(listing['pagination']['total'], 1)

    def test_notifications_and_heartbeat(self):
        headers = self.login('admin@example.com', admin=True)
        self.client.post(f'/admin/users/{self.user.user_id}/credit', json={'amount': 1}, headers=headers)

        notices = self.client.get('/admin/notifications', headers=headers).get_json()['data']
        self.assertTrue(notices[0]['message'].startswith('Credited $1.00'))

        resp = self.client.delete(f"/admin/notifications/{notices[0]['id']}", headers=headers)
        self.assertEqual(resp.status_code, 200)
        resp = self.client.delete(f"/admin/notifications/{notices[0]['id']}", headers=headers)
        self.assertEqual(resp.status_code, 404)

        beat = self.client.post('/admin/heartbeat', headers=headers).get_json()['data']
        self.assertEqual(beat['online_status'], 'Online')

    def test_admin_edits_own_name(self):
        headers = self.login('admin@example.com', admin=True)
        resp = self.client.patch('/api/auth/me', json={'name': 'Ops Desk'}, headers=headers)

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(db.session.get(User, self.admin.user_id).name, 'Ops Desk')

    def test_invalid_balances_are_typed_errors(self):
        headers = self.login('admin@example.com', admin=True)
        for balance in ('NaN', 'Infinity', '1e30', -1):
            resp = self.client.patch(
                f'/admin/users/{self.user.user_id}', json={'name': 'Renamed', 'balance': balance}, headers=headers
            )
            self.assertEqual(resp.status_code, 400, balance)
            self.assertEqual(resp.get_json()['error_code'], 'INVALID_AMOUNT')

        resp = self.client.post('/admin/users', headers=headers, json={
            'email': 'erin@example.com', 'name': 'Erin', 'password': 'longenough', 'balance': 'NaN',
        })
        self.assertEqual(resp.status_code, 400)

        # Nothing was half-applied
        self.assertEqual(db.session.get(User, self.user.user_id).name, 'Alice')
        self.assertEqual(self.balance_of(self.account.account_id), Decimal('100.00'))

    def test_numeric_email_is_rejected_cleanly(self):
        headers = self.login('admin@example.com', admin=True)
        resp = self.client.post('/admin/users', headers=headers, json={
            'email': 12345, 'name': 'Num', 'password': 'longenough',
        })
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['error_code'], 'MISSING_FIELD')

    def test_pagination_reports_clamped_values(self):
        headers = self.login('admin@example.com', admin=True)
        resp = self.client.get('/admin/transactions?page=0&per_page=0', headers=headers)

        pagination = resp.get_json()['pagination']
        self.assertEqual(pagination['page'], 1)
        self.assertEqual(pagination['per_page'], 20)
