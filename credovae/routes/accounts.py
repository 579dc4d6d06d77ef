from flask import Blueprint, current_app, g, request, jsonify
from flask_jwt_extended import get_jwt
from credovae.decorators import login_required
from credovae.errors import MissingField
from credovae.services import account_service

accounts_bp = Blueprint('accounts', __name__)


@accounts_bp.route('/me', methods=['GET'])
@login_required
def get_my_account():
    """
    Get the caller's account
    ---
    tags:
      - Accounts
    security:
      - Bearer: []
    responses:
      200:
        description: Account with current balance
      404:
        description: Account not found
    """
    account = account_service.get_account(g.current_user)
    return jsonify(account.to_dict()), 200


@accounts_bp.route('/me/dashboard', methods=['GET'])
@login_required
def get_dashboard():
    """
    Dashboard overview: balance, totals, pending count, recent activity
    ---
    tags:
      - Accounts
    security:
      - Bearer: []
    responses:
      200:
        description: Dashboard data
    """
    return jsonify(account_service.get_dashboard(g.current_user)), 200


@accounts_bp.route('/me/transactions', methods=['GET'])
@login_required
def list_my_transactions():
    """
    List the caller's transactions, newest first
    ---
    tags:
      - Accounts
    security:
      - Bearer: []
    parameters:
      - name: filter
        in: query
        type: string
        enum: [all, INCOMING, OUTGOING, PENDING]
        default: all
    responses:
      200:
        description: Transactions
      400:
        description: Unknown filter
    """
    view = request.args.get('filter', 'all')
    if view not in account_service.TRANSACTION_FILTERS:
        raise MissingField(['filter'], message=f"filter must be one of {', '.join(account_service.TRANSACTION_FILTERS)}")

    account = account_service.get_account(g.current_user)
    transactions = account_service.list_account_transactions(account, view)
    return jsonify([t.to_dict() for t in transactions]), 200


@accounts_bp.route('/me/balance-updates', methods=['GET'])
@login_required
def get_balance_updates():
    """
    Latest balance seen by the session's periodic refresh
    ---
    tags:
      - Accounts
    security:
      - Bearer: []
    responses:
      200:
        description: Balance and whether it changed since the last call
    """
    state = current_app.extensions['sessions'].get(get_jwt()['jti'])
    if state is None or state.watcher is None:
        # Session opened before a restart; read straight from the store
        account = account_service.get_account(g.current_user)
        return jsonify({'balance': float(account.balance), 'changed': False}), 200

    snapshot = state.watcher.snapshot()
    balance = snapshot['balance']
    return jsonify({
        'balance': float(balance) if balance is not None else None,
        'changed': snapshot['changed'],
    }), 200
