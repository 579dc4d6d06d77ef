from flask import Blueprint, g, jsonify
from credovae.decorators import login_required
from credovae.routes import json_body
from credovae.errors import MissingField
from credovae.services import transfer_service
from credovae.services.routing_codes import list_rules

transfers_bp = Blueprint('transfers', __name__)


@transfers_bp.route('/countries', methods=['GET'])
def list_countries():
    """
    Countries with a local routing-code rule
    ---
    tags:
      - Transfers
    responses:
      200:
        description: Label, placeholder and required flag per country
    """
    return jsonify(list_rules()), 200


@transfers_bp.route('/validate', methods=['POST'])
@login_required
def validate_transfer():
    """
    Check transfer details without issuing a code
    ---
    tags:
      - Transfers
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          $ref: '#/definitions/TransferDetails'
    responses:
      200:
        description: Details are valid
      400:
        description: Missing field, invalid amount or invalid routing code
      402:
        description: Insufficient balance
    """
    cleaned = transfer_service.validate_for_user(g.current_user, json_body())
    cleaned['amount'] = float(cleaned['amount'])
    return jsonify({'valid': True, 'details': cleaned}), 200


@transfers_bp.route('', methods=['POST'])
@login_required
def initiate_transfer():
    """
    Start a transfer and email a one-time code
    ---
    tags:
      - Transfers
    security:
      - Bearer: []
    definitions:
      TransferDetails:
        type: object
        required:
          - recipient_name
          - recipient_bank
          - recipient_account
          - amount
          - recipient_country
        properties:
          recipient_name:
            type: string
          recipient_bank:
            type: string
          recipient_account:
            type: string
          amount:
            type: number
          recipient_country:
            type: string
            description: ISO 3166-1 alpha-2 code
          routing_code:
            type: string
          description:
            type: string
    parameters:
      - in: body
        name: body
        required: true
        schema:
          $ref: '#/definitions/TransferDetails'
    responses:
      201:
        description: Code sent; transfer awaits the code
      400:
        description: Validation failed
      402:
        description: Insufficient balance
      502:
        description: Code email could not be delivered
    """
    attempt = transfer_service.initiate(g.current_user, json_body())
    return jsonify({
        'message': f'OTP sent to {g.current_user.email}',
        'transfer': attempt.to_dict(),
    }), 201


@transfers_bp.route('/<attempt_id>/complete', methods=['POST'])
@login_required
def complete_transfer(attempt_id):
    """
    Submit the one-time code and create the pending transaction
    ---
    tags:
      - Transfers
    security:
      - Bearer: []
    parameters:
      - in: path
        name: attempt_id
        required: true
        type: string
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - otp_code
          properties:
            otp_code:
              type: string
    responses:
      201:
        description: Transaction created with status PENDING
      400:
        description: Invalid or expired code
      404:
        description: Transfer not found
      409:
        description: Code already used or transfer not awaiting a code
      429:
        description: Too many attempts
    """
    data = json_body()
    otp_code = data.get('otp_code')
    if not otp_code:
        raise MissingField(['otp_code'], message='Please enter a 6-digit code')

    txn = transfer_service.complete(attempt_id, g.current_user, str(otp_code))
    return jsonify({
        'message': 'Transfer submitted for approval',
        'transaction': txn.to_dict(),
    }), 201


@transfers_bp.route('/<attempt_id>/cancel', methods=['POST'])
@login_required
def cancel_transfer(attempt_id):
    """
    Abandon a transfer before it completes
    ---
    tags:
      - Transfers
    security:
      - Bearer: []
    parameters:
      - in: path
        name: attempt_id
        required: true
        type: string
    responses:
      200:
        description: Transfer abandoned
      404:
        description: Transfer not found
      409:
        description: Transfer already completed or abandoned
    """
    attempt = transfer_service.cancel(attempt_id, g.current_user)
    return jsonify({'message': 'Transfer cancelled', 'transfer': attempt.to_dict()}), 200
