from flask import Blueprint, jsonify, g, current_app
from chiral.extensions import db
from chiral.errors import BadRequest, Unauthorized
from chiral.models.user import User
from chiral.middleware.auth import require_auth
from chiral.services import google_auth
from chiral.services.passwords import placeholder_password
from chiral.services.tokens import sign_token
from chiral.api._helpers import json_body, isoformat

bp = Blueprint('auth', __name__, url_prefix='/api')


def _user_to_dict(user, include_timestamps=True):
    """Serialize a User. The password hash is never included."""
    data = {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'googleId': user.google_id,
        'learningInterests': user.learning_interests or [],
        'profilePicture': user.profile_picture,
    }
    if include_timestamps:
        data['createdAt'] = isoformat(user.created_at)
        data['updatedAt'] = isoformat(user.updated_at)
    return data


def _required_string(data, field, label):
    value = data.get(field)
    if not value:
        raise BadRequest(f'{label} is required')
    if not isinstance(value, str):
        raise BadRequest(f'{label} must be a string')
    return value


def _normalize_interests(value):
    """Accept a list of tags or a single tag string."""
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(v) for v in value if v]
    raise BadRequest('Learning interests must be a list of strings')


@bp.route('/auth/register', methods=['POST'])
def register():
    data = json_body()

    name = _required_string(data, 'name', 'Name')
    email = _required_string(data, 'email', 'Email').strip().lower()
    password = _required_string(data, 'password', 'Password')
    if User.query.filter_by(email=email).first():
        raise BadRequest('email must be unique')

    user = User(
        name=name,
        email=email,
        password=password,
        learning_interests=_normalize_interests(data.get('learningInterests')),
    )
    db.session.add(user)
    db.session.commit()
    current_app.logger.info('Registered user %s', user.id)

    return jsonify({
        'message': 'User registered successfully',
        'user': _user_to_dict(user),
    }), 201


@bp.route('/auth/login', methods=['POST'])
def login():
    data = json_body()
    email = _required_string(data, 'email', 'Email')
    password = _required_string(data, 'password', 'Password')

    user = User.query.filter_by(email=email.strip().lower()).first()
    if not user or not user.check_password(password):
        raise Unauthorized('Invalid email/password')

    return jsonify({
        'message': 'Login successful',
        'access_token': sign_token(user.id),
        'user': _user_to_dict(user, include_timestamps=False),
    })


@bp.route('/google-login', methods=['POST'])
def google_login():
    """Sign in with a Google ID token, creating or linking the account."""
    data = json_body()
    token = data.get('googleToken')
    if not token:
        raise BadRequest('Google token is required')

    identity = google_auth.verify_id_token(token)
    email = identity['email'].strip().lower()

    user = User.query.filter_by(google_id=identity['google_id']).first()
    if not user:
        user = User.query.filter_by(email=email).first()
        if user:
            # Link an existing email/password account
            user.google_id = identity['google_id']
            if not user.profile_picture:
                user.profile_picture = identity['picture']
        else:
            user = User(
                name=identity['name'] or email.split('@')[0],
                email=email,
                password=placeholder_password(),
                google_id=identity['google_id'],
                profile_picture=identity['picture'],
                learning_interests=[],
            )
            db.session.add(user)
        db.session.commit()

    return jsonify({
        'message': 'Google login successful',
        'access_token': sign_token(user.id),
        'user': _user_to_dict(user, include_timestamps=False),
    })


@bp.route('/auth/profile', methods=['GET'])
@require_auth
def get_profile():
    return jsonify({'user': _user_to_dict(g.user)})


@bp.route('/auth/interests', methods=['PUT'])
@require_auth
def update_interests():
    data = json_body()
    user = g.user
    user.learning_interests = _normalize_interests(data.get('learningInterests'))
    db.session.commit()

    return jsonify({
        'message': 'Learning interests updated successfully',
        'learningInterests': user.learning_interests,
    })
