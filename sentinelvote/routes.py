# sentinelvote/routes.py

# HTTP routes. Handlers stay thin: parse the request, call the election
# services, shape the JSON response. SentinelVoteError subclasses are turned
# into JSON errors by the handler registered in create_app().

from flask import current_app, jsonify, request
from flask_jwt_extended import get_jwt, get_jwt_identity, jwt_required

from sentinelvote import limiter
from sentinelvote.authentication.rbac import Permission, require_permission
from sentinelvote.errors import AuthorizationError, ValidationError


def election():
    return current_app.extensions['sentinelvote']


def token_manager():
    return current_app.extensions['sentinelvote.tokens']


def json_body():
    if not request.is_json:
        raise ValidationError("Please send a Content-Type of 'application/json'")
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Invalid request body")
    return body


def register_routes(app):
    @app.route('/ping')
    def ping():
        return '.', 200, {'Content-Type': 'text/plain'}

    # -- authentication -------------------------------------------------------

    @app.route('/login', methods=['POST'])
    @limiter.limit("30/minute")
    def login():
        body = json_body()
        profile = election().authenticate(body.get('email'), body.get('password'), request.remote_addr)
        email = profile['email']
        token = token_manager().issue_token(email, profile['isCentralAuthority'], profile['constituency'])
        return jsonify({
            'success': True,
            'email': email,
            'constituency': profile['constituency'],
            'isCentralAuthority': profile['isCentralAuthority'],
            'hasPublicKey': profile['publicKey'] != '',
            'token': token,
        })

    # -- users ----------------------------------------------------------------

    @app.route('/users')
    @require_permission(Permission.VIEW_VOTER_LIST)
    def get_users():
        return jsonify(election().get_voters())

    @app.route('/users/<email>')
    @jwt_required()
    def get_user_by_email(email):
        if email != get_jwt_identity() and not get_jwt().get('is_central_authority'):
            raise AuthorizationError()
        return jsonify(election().get_user(email))

    # -- keys -----------------------------------------------------------------

    @app.route('/keys/public/folded', methods=['GET'])
    def get_folded_public_keys():
        return jsonify({'foldedPublicKeys': election().get_folded_public_keys()})

    @app.route('/keys/public/folded', methods=['PUT'])
    @require_permission(Permission.FOLD_PUBLIC_KEYS)
    def put_folded_public_keys():
        folded = election().fold_anonymity_set()
        return jsonify({'foldedPublicKeys': folded}), 201

    @app.route('/keys/public/folded/exists')
    def exists_folded_public_keys():
        return jsonify({'exists': election().folded_public_keys_exist()})

    @app.route('/keys/store', methods=['POST'])
    @require_permission(Permission.STORE_OWN_KEYS)
    def store_user_keys():
        body = json_body()
        election().store_user_keys(get_jwt_identity(), body.get('publicKey'), body.get('privateKey'))
        return jsonify({'message': 'Storing of public keys is successful.'})

    @app.route('/lrs/generate-keys')
    def generate_keys():
        private_key, public_key = election().issue_key_pair()
        return jsonify({'publicKey': public_key, 'privateKey': private_key})

    @app.route('/lrs/sign', methods=['POST'])
    def sign():
        body = json_body()
        signature = election().sign_message(body.get('privateKey'), body.get('message'))
        return jsonify({'signature': signature})

    @app.route('/voter/private-key', methods=['POST'])
    @jwt_required()
    def get_private_key_by_email():
        email = json_body().get('email')
        if email != get_jwt_identity() and not get_jwt().get('is_central_authority'):
            raise AuthorizationError()
        return jsonify({'privateKey': election().get_private_key(email)})

    # -- votes and election state ---------------------------------------------

    @app.route('/fabric/vote', methods=['PUT'])
    def put_vote():
        # Raw body: the ledger must receive exactly the bytes that were signed.
        receipt = election().submit_vote(request.get_data(cache=False))
        return jsonify({'key': receipt.key, 'status': receipt.status})

    @app.route('/voter/has-voted', methods=['POST'])
    @require_permission(Permission.MARK_OWN_VOTE)
    def update_has_voted():
        changed = election().mark_has_voted(get_jwt_identity())
        return jsonify({'success': True, 'alreadyVoted': not changed})

    @app.route('/election/close', methods=['POST'])
    @require_permission(Permission.CLOSE_ELECTION)
    def close_election():
        already_closed = election().close_election(actor=get_jwt_identity())
        return jsonify({'closed': True, 'alreadyClosed': already_closed})

    @app.route('/election/closed')
    def is_election_closed():
        return jsonify({'closed': election().is_election_closed()})

    # -- development only -----------------------------------------------------

    if app.config.get('DEV_ROUTES_ENABLED'):
        @app.route('/dev/db/reset/<profile>/<users>')
        def reset_database(profile, users):
            election().provision_election(profile, users)
            return jsonify({'message': f'Created {profile} schema with {users} users'})

        @app.route('/dev/db/table')
        def dump_tables():
            return jsonify(election().dump_tables())

        @app.route('/dev/db/table/users')
        def dump_users():
            return jsonify(election().dump_users())

        @app.route('/dev/db/table/folded-public-keys')
        def dump_folded_public_keys():
            return jsonify({'foldedPublicKeys': election().dump_folded_public_keys()})
