from flask import Blueprint, g, jsonify
from credovae.decorators import login_required
from credovae.services import account_service

messages_bp = Blueprint('messages', __name__)


@messages_bp.route('', methods=['GET'])
@login_required
def list_messages():
    """
    List messages from admins (marks them read)
    ---
    tags:
      - Messages
    security:
      - Bearer: []
    responses:
      200:
        description: Messages, newest first
    """
    return jsonify(account_service.list_messages(g.current_user)), 200


@messages_bp.route('/unread-count', methods=['GET'])
@login_required
def unread_count():
    """
    Count unread messages
    ---
    tags:
      - Messages
    security:
      - Bearer: []
    responses:
      200:
        description: Unread count
    """
    return jsonify({'unread_count': account_service.unread_count(g.current_user)}), 200
