from flask import Blueprint, g, request, jsonify
from credovae.decorators import admin_required
from credovae.routes import json_body
from credovae.errors import MissingField, NotFound
from credovae.services import account_service, user_admin_service
from credovae.services.notifications import get_notice_board

admin_users_bp = Blueprint('admin_users', __name__)


@admin_users_bp.route('/users', methods=['GET'])
@admin_required
def list_users():
    """
    List users visible to the caller's role
    ---
    tags:
      - Admin Users
    security:
      - Bearer: []
    parameters:
      - name: search
        in: query
        type: string
    responses:
      200:
        description: Users with account number and balance
    """
    users = user_admin_service.list_users(g.current_user, request.args.get('search'))
    return jsonify({"success": True, "data": users}), 200


@admin_users_bp.route('/users', methods=['POST'])
@admin_required
def create_user():
    """
    Create a user and their account
    ---
    tags:
      - Admin Users
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - email
            - name
            - password
          properties:
            email:
              type: string
            name:
              type: string
            password:
              type: string
            account_number:
              type: string
            balance:
              type: number
            role:
              type: string
              enum: [user, admin, master_admin]
              description: Honoured for master admins only
    responses:
      201:
        description: User created
      400:
        description: Invalid input
      409:
        description: Email or account number already exists
    """
    user = user_admin_service.create_user(g.current_user, json_body())
    return jsonify({"success": True, "data": user_admin_service.user_details(user)}), 201


@admin_users_bp.route('/users/<user_id>', methods=['GET'])
@admin_required
def get_user(user_id):
    """
    User details
    ---
    tags:
      - Admin Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        required: true
        type: string
    responses:
      200:
        description: User
      404:
        description: User not found or not visible to the caller
    """
    user = user_admin_service.get_user(g.current_user, user_id)
    return jsonify({"success": True, "data": user_admin_service.user_details(user)}), 200


@admin_users_bp.route('/users/<user_id>', methods=['PATCH'])
@admin_required
def update_user(user_id):
    """
    Update name and/or balance
    ---
    tags:
      - Admin Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        required: true
        type: string
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            name:
              type: string
            balance:
              type: number
    responses:
      200:
        description: User updated
      403:
        description: Caller may not edit this user
      404:
        description: User not found
    """
    user = user_admin_service.update_user(g.current_user, user_id, json_body())
    return jsonify({"success": True, "data": user_admin_service.user_details(user)}), 200


@admin_users_bp.route('/users/<user_id>', methods=['DELETE'])
@admin_required
def delete_user(user_id):
    """
    Delete a user and their account
    ---
    tags:
      - Admin Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        required: true
        type: string
    responses:
      200:
        description: User deleted
      404:
        description: User not found
    """
    user_admin_service.delete_user(g.current_user, user_id)
    return jsonify({"success": True, "message": "User deleted"}), 200


def _adjust(user_id, direction):
    data = json_body()
    if data.get('amount') in (None, ''):
        raise MissingField(['amount'])
    account = user_admin_service.adjust_balance(g.current_user, user_id, data['amount'], direction)
    return jsonify({"success": True, "data": account.to_dict()}), 200


@admin_users_bp.route('/users/<user_id>/credit', methods=['POST'])
@admin_required
def credit_user(user_id):
    """
    Credit a user's account
    ---
    tags:
      - Admin Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        required: true
        type: string
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - amount
          properties:
            amount:
              type: number
    responses:
      200:
        description: New account state
    """
    return _adjust(user_id, 'credit')


@admin_users_bp.route('/users/<user_id>/debit', methods=['POST'])
@admin_required
def debit_user(user_id):
    """
    Debit a user's account
    ---
    tags:
      - Admin Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        required: true
        type: string
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - amount
          properties:
            amount:
              type: number
    responses:
      200:
        description: New account state
      402:
        description: Insufficient balance
    """
    return _adjust(user_id, 'debit')


@admin_users_bp.route('/users/<user_id>/toggle-active', methods=['POST'])
@admin_required
def toggle_active(user_id):
    """
    Activate or deactivate a user
    ---
    tags:
      - Admin Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        required: true
        type: string
    responses:
      200:
        description: New status
    """
    user = user_admin_service.toggle_active(g.current_user, user_id)
    return jsonify({"success": True, "data": user_admin_service.user_details(user)}), 200


@admin_users_bp.route('/users/<user_id>/messages', methods=['POST'])
@admin_required
def send_message(user_id):
    """
    Send a message to a user
    ---
    tags:
      - Admin Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        required: true
        type: string
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - message_text
          properties:
            message_text:
              type: string
    responses:
      201:
        description: Message sent
    """
    data = json_body()
    message = user_admin_service.send_message(g.current_user, user_id, data.get('message_text'))
    return jsonify({"success": True, "data": message.to_dict()}), 201


@admin_users_bp.route('/heartbeat', methods=['POST'])
@admin_required
def heartbeat():
    """
    Refresh the caller's last_seen (drives the Online/Offline status)
    ---
    tags:
      - Admin Users
    security:
      - Bearer: []
    responses:
      200:
        description: Updated profile
    """
    user = account_service.touch_last_seen(g.current_user)
    return jsonify({"success": True, "data": user.to_dict()}), 200


@admin_users_bp.route('/notifications', methods=['GET'])
@admin_required
def list_notifications():
    """
    Admin console notices, newest first
    ---
    tags:
      - Admin Notifications
    security:
      - Bearer: []
    responses:
      200:
        description: Notices
    """
    return jsonify({"success": True, "data": get_notice_board().list()}), 200


@admin_users_bp.route('/notifications/<notice_id>', methods=['DELETE'])
@admin_required
def delete_notification(notice_id):
    """
    Dismiss a notice
    ---
    tags:
      - Admin Notifications
    security:
      - Bearer: []
    parameters:
      - in: path
        name: notice_id
        required: true
        type: string
    responses:
      200:
        description: Notice removed
      404:
        description: Notice not found
    """
    if not get_notice_board().delete(notice_id):
        raise NotFound("Notification not found")
    return jsonify({"success": True}), 200
