from flask import Blueprint, current_app, g, jsonify
from flask_jwt_extended import create_access_token, decode_token, get_jwt
import datetime
from credovae.decorators import login_required
from credovae.routes import json_body
from credovae.extensions import BLOCKLIST
from credovae.errors import MissingField
from credovae.services import account_service

auth_bp = Blueprint('auth', __name__)


def _get_sessions():
    return current_app.extensions['sessions']


def _issue_session(user, account=None):
    access_token = create_access_token(
        identity=str(user.user_id),
        additional_claims={'role': user.role},
        expires_delta=datetime.timedelta(minutes=current_app.config['ACCESS_TOKEN_MINUTES']),
    )
    claims = decode_token(access_token, allow_expired=True)
    expires_at = None
    if claims.get('exp') is not None:
        expires_at = datetime.datetime.fromtimestamp(claims['exp'], datetime.timezone.utc)
    _get_sessions().open(claims['jti'], user, account, expires_at=expires_at)
    return access_token


def _credentials():
    data = json_body()
    missing = [f for f in ('email', 'password') if not data.get(f)]
    if missing:
        raise MissingField(missing, message='Missing email or password')
    return str(data['email']), str(data['password'])


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Authenticate a banking user and open a session
    ---
    tags:
      - Auth
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - email
            - password
          properties:
            email:
              type: string
            password:
              type: string
    responses:
      200:
        description: Login successful
      401:
        description: Invalid credentials
      403:
        description: Account deactivated
    """
    email, password = _credentials()
    user = account_service.authenticate(email, password)
    account = account_service.ensure_account(user)
    access_token = _issue_session(user, account)

    return jsonify({
        'message': 'Login successful',
        'access_token': access_token,
        'user': user.to_dict(),
        'account': account.to_dict(),
    }), 200


@auth_bp.route('/admin/login', methods=['POST'])
def admin_login():
    """
    Authenticate an admin or master admin
    ---
    tags:
      - Auth
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - email
            - password
          properties:
            email:
              type: string
            password:
              type: string
    responses:
      200:
        description: Login successful
      401:
        description: Invalid credentials or insufficient permissions
    """
    email, password = _credentials()
    user = account_service.authenticate(email, password, admin_only=True)
    account_service.touch_last_seen(user)
    access_token = _issue_session(user)

    return jsonify({
        'message': 'Login successful',
        'access_token': access_token,
        'user': user.to_dict(),
    }), 200


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    """
    Restore the current session's profile
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Current user
      401:
        description: Missing, expired or revoked token
    """
    user = g.current_user
    body = {'user': user.to_dict()}
    if not user.is_admin:
        body['account'] = account_service.get_account(user).to_dict()
    return jsonify(body), 200


@auth_bp.route('/me', methods=['PATCH'])
@login_required
def update_me():
    """
    Change the caller's display name (users and admins alike)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - name
          properties:
            name:
              type: string
    responses:
      200:
        description: Updated profile
      400:
        description: Name missing or too long
    """
    user = account_service.update_profile(g.current_user, json_body())
    return jsonify({'message': 'Profile updated', 'user': user.to_dict()}), 200


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """
    Logout (revoke token and stop the session's balance refresh)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logout successful
    """
    jti = get_jwt()['jti']
    BLOCKLIST.add(jti)
    _get_sessions().close(jti)

    return jsonify({'message': 'Logout successful'}), 200
