import logging
from functools import wraps

from flask import Blueprint, abort, flash, redirect, render_template, request, url_for
from flask_login import LoginManager, current_user, login_required, login_user, logout_user

from hopeconnect.database import db
from hopeconnect.models import User, UserRole, has_role

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

login_manager = LoginManager()
login_manager.login_view = 'auth.login'
login_manager.login_message_category = 'info'


@login_manager.user_loader
def load_user(user_id):
    return User.query.get(int(user_id))


def admin_required(view):
    """Anonymous users are sent to the login page, non-admins get a 403."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        if not has_role(current_user, 'admin'):
            logger.warning('Admin access denied for %s on %s', current_user.email, request.path)
            abort(403)
        return view(*args, **kwargs)
    return wrapped


def _safe_next(target):
    if target and target.startswith('/') and not target.startswith('//'):
        return target
    return None


@auth_bp.route('/register', methods=['GET', 'POST'])
def register():
    if current_user.is_authenticated:
        return redirect(url_for('public.index'))

    if request.method == 'POST':
        email = request.form.get('email', '').strip().lower()
        full_name = request.form.get('full_name', '').strip()
        password = request.form.get('password', '')

        if not email or not password:
            flash('Email and password are required.', 'danger')
            return render_template('auth/register.html'), 400
        if len(password) < 6:
            flash('Password must be at least 6 characters.', 'danger')
            return render_template('auth/register.html'), 400
        if User.query.filter_by(email=email).first() is not None:
            flash('An account with that email already exists.', 'danger')
            return render_template('auth/register.html'), 400

        user = User(email=email, full_name=full_name or None)
        user.set_password(password)
        user.roles.append(UserRole(role='user'))
        db.session.add(user)
        db.session.commit()
        logger.info('Registered user %s', email)
        flash('Registration successful. You can now log in.', 'success')
        return redirect(url_for('auth.login'))

    return render_template('auth/register.html')


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    if current_user.is_authenticated:
        return redirect(url_for('public.index'))

    if request.method == 'POST':
        email = request.form.get('email', '').strip().lower()
        password = request.form.get('password', '')

        user = User.query.filter_by(email=email).first()

        if user is None or not user.check_password(password):
            flash('Invalid email or password.', 'danger')
            return redirect(url_for('auth.login'))

        login_user(user)
        flash('Logged in successfully!', 'success')
        next_url = _safe_next(request.args.get('next'))
        if next_url:
            return redirect(next_url)
        if user.is_admin_user:
            return redirect(url_for('admin.dashboard'))
        return redirect(url_for('public.index'))

    return render_template('auth/login.html')


@auth_bp.route('/logout')
@login_required
def logout():
    logout_user()
    flash('You have been logged out.', 'info')
    return redirect(url_for('public.index'))
