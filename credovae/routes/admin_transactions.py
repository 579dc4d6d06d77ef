from flask import Blueprint, request, jsonify
from credovae.decorators import admin_required
from credovae.routes import json_body
from credovae.errors import MissingField
from credovae.services import approval_service

admin_transactions_bp = Blueprint('admin_transactions', __name__)


@admin_transactions_bp.route('', methods=['GET'])
@admin_required
def list_transactions():
    """
    List all transactions, newest first
    ---
    tags:
      - Admin Transactions
    security:
      - Bearer: []
    parameters:
      - name: status
        in: query
        type: string
        enum: [PENDING, SUCCESSFUL, REJECTED]
      - name: type
        in: query
        type: string
        enum: [INCOMING, OUTGOING]
      - name: account_id
        in: query
        type: string
      - name: page
        in: query
        type: integer
        default: 1
      - name: per_page
        in: query
        type: integer
        default: 20
    responses:
      200:
        description: Page of transactions
    """
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 20, type=int)

    result = approval_service.list_transactions(
        status=request.args.get('status'),
        type=request.args.get('type'),
        account_id=request.args.get('account_id'),
        page=page,
        per_page=per_page,
    )
    return jsonify({
        "success": True,
        "data": result['data'],
        "pagination": result['pagination']
    }), 200


@admin_transactions_bp.route('/pending', methods=['GET'])
@admin_required
def list_pending():
    """
    Transactions awaiting review, newest first
    ---
    tags:
      - Admin Transactions
    security:
      - Bearer: []
    responses:
      200:
        description: Pending transactions
    """
    pending = approval_service.list_pending()
    return jsonify({"success": True, "data": [t.to_dict() for t in pending]}), 200


@admin_transactions_bp.route('/stats', methods=['GET'])
@admin_required
def get_stats():
    """
    Transaction totals and counts, recomputed on every call
    ---
    tags:
      - Admin Transactions
    security:
      - Bearer: []
    responses:
      200:
        description: Totals and counts
    """
    stats = approval_service.get_admin_stats()
    return jsonify({"success": True, "data": approval_service.stats_to_dict(stats)}), 200


@admin_transactions_bp.route('/<transaction_id>', methods=['GET'])
@admin_required
def get_transaction(transaction_id):
    """
    Transaction details
    ---
    tags:
      - Admin Transactions
    security:
      - Bearer: []
    parameters:
      - in: path
        name: transaction_id
        required: true
        type: string
    responses:
      200:
        description: Transaction
      404:
        description: Transaction not found
    """
    txn = approval_service.get_transaction(transaction_id)
    return jsonify({"success": True, "data": txn.to_dict()}), 200


@admin_transactions_bp.route('/<transaction_id>/approve', methods=['POST'])
@admin_required
def approve_transaction(transaction_id):
    """
    Approve a pending transaction (debit stays)
    ---
    tags:
      - Admin Transactions
    security:
      - Bearer: []
    parameters:
      - in: path
        name: transaction_id
        required: true
        type: string
    responses:
      200:
        description: Transaction is SUCCESSFUL
      404:
        description: Transaction not found
      409:
        description: Transaction already resolved
    """
    txn = approval_service.approve(transaction_id)
    return jsonify({"success": True, "data": txn.to_dict()}), 200


@admin_transactions_bp.route('/<transaction_id>/reject', methods=['POST'])
@admin_required
def reject_transaction(transaction_id):
    """
    Reject a pending transaction (outgoing amount refunded)
    ---
    tags:
      - Admin Transactions
    security:
      - Bearer: []
    parameters:
      - in: path
        name: transaction_id
        required: true
        type: string
    responses:
      200:
        description: Transaction is REJECTED
      404:
        description: Transaction not found
      409:
        description: Transaction already resolved
    """
    txn = approval_service.reject(transaction_id)
    return jsonify({"success": True, "data": txn.to_dict()}), 200


@admin_transactions_bp.route('/simulate', methods=['POST'])
@admin_required
def simulate_transaction():
    """
    Create a PENDING transaction for an account
    ---
    tags:
      - Admin Transactions
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - account_id
            - type
            - amount
          properties:
            account_id:
              type: string
            type:
              type: string
              enum: [INCOMING, OUTGOING]
            amount:
              type: number
            description:
              type: string
    responses:
      201:
        description: Transaction created
      402:
        description: Insufficient balance for an outgoing transaction
      404:
        description: Account not found
    """
    data = json_body()
    missing = [f for f in ('account_id', 'type', 'amount') if data.get(f) in (None, '')]
    if missing:
        raise MissingField(missing)

    txn = approval_service.simulate_transaction(
        data['account_id'], data['type'], data['amount'], data.get('description')
    )
    return jsonify({"success": True, "data": txn.to_dict()}), 201
