from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from hopeconnect.database import db

ROLES = ('admin', 'user')
EVENT_TYPES = ('awareness', 'workshop', 'fundraising')
POST_STATUSES = ('draft', 'published')
REVIEW_STATUSES = ('pending', 'approved', 'rejected')
POST_CATEGORIES = (
    'survivor-stories', 'medical-insights', 'research-updates',
    'prevention-tips', 'treatment-options', 'community-events',
)
TESTIMONY_CATEGORIES = ('survivor', 'patient', 'family', 'caregiver')
PROJECT_CATEGORIES = ('support', 'research', 'awareness', 'education', 'wellness')
PROJECT_STATUSES = ('active', 'completed', 'planned')
RESOURCE_CATEGORIES = (
    'Prevention', 'Early Detection', 'Screening Guidelines',
    'Treatment Information', 'Nutrition', 'Mental Health', 'General',
)


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    full_name = db.Column(db.String(150), nullable=True)
    password_hash = db.Column(db.String(256))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    roles = db.relationship('UserRole', backref='user', cascade='all, delete-orphan')

    def set_password(self, password):
        """Hashes the password before storing it."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Checks a plain password against the stored hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def has_role(self, role):
        return any(r.role == role for r in self.roles)

    @property
    def is_admin_user(self):
        return self.has_role('admin')

    def __repr__(self):
        return f'<User {self.email}>'


class UserRole(db.Model):
    __table_args__ = (db.UniqueConstraint('user_id', 'role'),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='user')


class Event(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    date = db.Column(db.Date, nullable=False)
    time = db.Column(db.String(20), nullable=False)
    location = db.Column(db.String(200), nullable=False)
    type = db.Column(db.String(20), nullable=False, default='awareness')
    capacity = db.Column(db.Integer, nullable=False, default=0)
    registered = db.Column(db.Integer, nullable=False, default=0)
    image = db.Column(db.String(300), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    rsvps = db.relationship('RSVP', backref='event', cascade='all, delete-orphan')

    @property
    def is_full(self):
        return self.registered >= self.capacity

    @property
    def fill_percent(self):
        if not self.capacity:
            return 100
        return min(100, round(self.registered * 100 / self.capacity))


class RSVP(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('event.id'), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(40), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class BlogPost(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    excerpt = db.Column(db.String(500), nullable=False)
    content = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(80), nullable=False)
    author = db.Column(db.String(150), nullable=False)
    image = db.Column(db.String(300), nullable=True)
    status = db.Column(db.String(20), nullable=False, default='draft')
    # set on event recap posts
    linked_event_id = db.Column(db.Integer, db.ForeignKey('event.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    linked_event = db.relationship('Event')
    comments = db.relationship('Comment', backref='post', cascade='all, delete-orphan')

    @property
    def is_published(self):
        return self.status == 'published'

    @property
    def approved_comments(self):
        approved = [c for c in self.comments if c.status == 'approved']
        return sorted(approved, key=lambda c: c.created_at)


class Comment(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    blog_post_id = db.Column(db.Integer, db.ForeignKey('blog_post.id'), nullable=False)
    author = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(200), nullable=True)
    content = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), default='pending')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class Testimony(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    story = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(40), nullable=False)
    cancer_type = db.Column(db.String(80), nullable=False)
    image = db.Column(db.String(300), nullable=True)
    status = db.Column(db.String(20), nullable=False, default='pending')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class TeamMember(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    role = db.Column(db.String(150), nullable=False)
    bio = db.Column(db.Text, nullable=False)
    image = db.Column(db.String(300), nullable=True)
    order_index = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class Project(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(40), nullable=False)
    status = db.Column(db.String(20), nullable=False, default='active')
    image = db.Column(db.String(300), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class GalleryImage(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    image_url = db.Column(db.String(300), nullable=False)
    tag = db.Column(db.String(80), nullable=False)
    title = db.Column(db.String(200), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class AwarenessResource(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    file_url = db.Column(db.String(300), nullable=False)
    file_type = db.Column(db.String(40), nullable=False)
    category = db.Column(db.String(80), nullable=False, default='General')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class VolunteerApplication(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(40), nullable=False)
    availability = db.Column(db.String(200), nullable=False)
    interests = db.Column(db.Text, nullable=False)
    experience = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), default='pending')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


def has_role(user, role):
    """True when ``user`` is signed in and holds ``role``."""
    if user is None or not getattr(user, 'is_authenticated', False):
        return False
    return user.has_role(role)
