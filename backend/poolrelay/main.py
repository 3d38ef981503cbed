from flask import Blueprint, jsonify

main = Blueprint('main', __name__)

@main.route('/')
@main.route('/health')
def index():
    return '8 Ball Pool Server OK', 200, {'Content-Type': 'text/plain'}

@main.app_errorhandler(404)
def not_found(_exc):
    return jsonify({'error': 'Not found'}), 404

@main.app_errorhandler(405)
def method_not_allowed(_exc):
    return jsonify({'error': 'Method not allowed'}), 405
