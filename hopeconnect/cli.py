from datetime import date, timedelta

import click

from hopeconnect.database import db
from hopeconnect.models import (
    BlogPost, Event, Project, TeamMember, Testimony, User, UserRole,
)


def create_admin(email, password, full_name=None):
    """Create the account, or promote an existing one, and return it."""
    email = email.strip().lower()
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, full_name=full_name)
        user.roles.append(UserRole(role='user'))
        db.session.add(user)
    user.set_password(password)
    if not user.has_role('admin'):
        user.roles.append(UserRole(role='admin'))
    db.session.commit()
    return user


def seed_if_empty():
    if Event.query.count() > 0:
        return False

    today = date.today()
    walk = Event(title='Breast Cancer Awareness Walk', type='awareness',
                 date=today + timedelta(days=14), time='9:00 AM',
                 location='City Park, Main Entrance', capacity=500, registered=0,
                 description='Join us for our annual awareness walk to support breast cancer '
                             'research and survivors. All ages welcome!')
    workshop = Event(title='Understanding Cancer Prevention Workshop', type='workshop',
                     date=today + timedelta(days=21), time='2:00 PM',
                     location='Community Health Center', capacity=50, registered=0,
                     description='Learn about lifestyle changes, screening guidelines, and '
                                 'prevention strategies from medical experts.')
    gala = Event(title='Hope Gala Fundraiser', type='fundraising',
                 date=today + timedelta(days=40), time='6:00 PM',
                 location='Grand Hotel Ballroom', capacity=200, registered=0,
                 description='An elegant evening of dinner, entertainment, and silent auction '
                             'to raise funds for cancer research.')
    db.session.add_all([walk, workshop, gala])

    db.session.add_all([
        BlogPost(title="Sarah's Journey Through Recovery", category='survivor-stories',
                 author='Sarah Johnson', status='published',
                 excerpt='A powerful story of hope and healing',
                 content='Two years after diagnosis, Sarah shares what carried her through.'),
        BlogPost(title='Understanding Early Detection', category='medical-insights',
                 author='Dr. Michael Chen', status='published',
                 excerpt='Why screening saves lives',
                 content='Regular screening finds cancers early, when treatment works best.'),
    ])
    db.session.add_all([
        TeamMember(name='Amara Okafor', role='Executive Director', order_index=0,
                   bio='Leads the foundation and its partnerships with local hospitals.'),
        TeamMember(name='Ravi Menon', role='Volunteer Coordinator', order_index=1,
                   bio='Matches volunteers with patients and programs.'),
    ])
    db.session.add_all([
        Project(title='Patient Transport Program', category='support', status='active',
                description='Free rides to and from treatment appointments.'),
        Project(title='Community Screening Camps', category='awareness', status='planned',
                description='Mobile screening camps in underserved neighbourhoods.'),
    ])
    db.session.add(Testimony(name='Grace W.', category='survivor', cancer_type='Breast Cancer',
                             status='approved',
                             story='The volunteers here walked with me through every appointment.'))
    db.session.commit()
    return True


def register_commands(app):
    @app.cli.command('init-db')
    def init_db():
        """Create all database tables."""
        db.create_all()
        click.echo('Database initialized successfully!')

    @app.cli.command('seed')
    def seed():
        """Load sample content into an empty database."""
        db.create_all()
        if seed_if_empty():
            click.echo('Database seeded with sample content.')
        else:
            click.echo('Database already has events; nothing seeded.')

    @app.cli.command('create-admin')
    @click.argument('email')
    @click.password_option()
    @click.option('--name', 'full_name', default=None, help='Display name for the account.')
    def create_admin_command(email, password, full_name):
        """Create an admin account, or grant admin to an existing one."""
        db.create_all()
        user = create_admin(email, password, full_name)
        click.echo(f'{user.email} is now an admin.')
