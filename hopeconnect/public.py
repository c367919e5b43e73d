import logging
import math
from datetime import date
from urllib.parse import quote

from flask import Blueprint, abort, current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user

from hopeconnect.database import db
from hopeconnect.models import (
    AwarenessResource, BlogPost, Comment, Event, EVENT_TYPES, GalleryImage,
    POST_CATEGORIES, Project, PROJECT_CATEGORIES, RESOURCE_CATEGORIES, RSVP,
    TeamMember, Testimony, TESTIMONY_CATEGORIES, VolunteerApplication, has_role,
)
from hopeconnect.notifications import EmailDeliveryError, send_rsvp_confirmation

logger = logging.getLogger(__name__)

public_bp = Blueprint('public', __name__)

DONATION_TIERS = [
    {'amount': 200, 'title': 'Supporter', 'description': 'Provides educational materials for one family'},
    {'amount': 500, 'title': 'Advocate', 'description': 'Funds transportation to treatment for a patient'},
    {'amount': 1000, 'title': 'Champion', 'description': 'Sponsors a screening camp in an underserved community'},
    {'amount': 5000, 'title': 'Guardian', 'description': 'Supports a patient through a full course of care'},
]
DONATION_TYPES = ('one-time', 'recurring')

VOLUNTEER_ROLES = [
    {'title': 'Patient Support Companion',
     'description': 'Provide emotional support and companionship to patients during treatment',
     'commitment': '4-8 hours per week'},
    {'title': 'Transportation Volunteer',
     'description': 'Drive patients to and from treatment appointments',
     'commitment': 'Flexible schedule, minimum 2 trips per month'},
    {'title': 'Administrative Assistant',
     'description': 'Help with office tasks, data entry, and organizational support',
     'commitment': '6-12 hours per week'},
    {'title': 'Event Coordinator',
     'description': 'Assist with planning and executing fundraising events and awareness campaigns',
     'commitment': '10-15 hours per month, flexible'},
    {'title': 'Medical Records Assistant',
     'description': 'Help organize and maintain patient records and medical documentation',
     'commitment': '8-16 hours per week'},
    {'title': 'Outreach Ambassador',
     'description': 'Represent the organization at community events and spread awareness',
     'commitment': 'Variable schedule, event-based'},
]

CANCER_TYPES = [
    'Breast Cancer', 'Lung Cancer', 'Leukemia', 'Colorectal Cancer', 'Lymphoma', 'Multiple Cancers',
]


def missing_fields(form, *names):
    return [name for name in names if not form.get(name, '').strip()]


def matches(query, *values):
    query = query.lower()
    return any(value and query in value.lower() for value in values)


def valid_email(value):
    value = value.strip()
    return '@' in value and not any(c in value for c in '\r\n')


def share_links(url, title):
    url, title = quote(url, safe=''), quote(title, safe='')
    return {
        'Facebook': f'https://www.facebook.com/sharer/sharer.php?u={url}',
        'Twitter': f'https://twitter.com/intent/tweet?url={url}&text={title}',
        'LinkedIn': f'https://www.linkedin.com/sharing/share-offsite/?url={url}',
        'Email': f'mailto:?subject={title}&body={url}',
    }


# --- Static pages ---

@public_bp.route('/')
def index():
    posts = (BlogPost.query.filter_by(status='published')
             .order_by(BlogPost.created_at.desc()).limit(3).all())
    events = (Event.query.filter(Event.date >= date.today())
              .order_by(Event.date).limit(3).all())
    testimonies = (Testimony.query.filter_by(status='approved')
                   .order_by(Testimony.created_at.desc()).limit(3).all())
    project_counts = {
        status: Project.query.filter_by(status=status).count()
        for status in ('active', 'completed')
    }
    return render_template('public/home.html', posts=posts, events=events,
                           testimonies=testimonies, project_counts=project_counts)


@public_bp.route('/about')
def about():
    return render_template('public/about.html')


@public_bp.route('/mission')
def mission():
    return render_template('public/mission.html')


@public_bp.route('/contact', methods=['GET', 'POST'])
def contact():
    if request.method == 'POST':
        missing = missing_fields(request.form, 'name', 'email', 'message')
        if missing:
            flash('Please fill in all required fields.', 'danger')
            return render_template('public/contact.html', form=request.form), 400
        logger.info('Contact message from %s', request.form['email'])
        flash("Message sent! We'll get back to you as soon as possible.", 'success')
        return redirect(url_for('public.contact'))
    return render_template('public/contact.html', form={})


@public_bp.route('/teams')
def teams():
    members = TeamMember.query.order_by(TeamMember.order_index, TeamMember.id).all()
    return render_template('public/teams.html', members=members)


@public_bp.route('/projects')
def projects():
    category = request.args.get('category', 'all')
    query = Project.query.order_by(Project.created_at.desc())
    if category in PROJECT_CATEGORIES:
        query = query.filter_by(category=category)
    return render_template('public/projects.html', projects=query.all(),
                           categories=PROJECT_CATEGORIES, selected=category)


@public_bp.route('/awareness')
def awareness():
    category = request.args.get('category', 'all')
    query = AwarenessResource.query.order_by(AwarenessResource.created_at.desc())
    if category in RESOURCE_CATEGORIES:
        query = query.filter_by(category=category)
    return render_template('public/awareness.html', resources=query.all(),
                           categories=RESOURCE_CATEGORIES, selected=category)


# --- Blog ---

@public_bp.route('/blogs')
def blogs():
    category = request.args.get('category', 'all')
    q = request.args.get('q', '').strip()
    posts = (BlogPost.query.filter_by(status='published')
             .order_by(BlogPost.created_at.desc()).all())
    if category in POST_CATEGORIES:
        posts = [p for p in posts if p.category == category]
    if q:
        posts = [p for p in posts if matches(q, p.title, p.excerpt)]
    return render_template('public/blogs.html', posts=posts, categories=POST_CATEGORIES,
                           selected=category, q=q)


def get_visible_post(post_id):
    post = BlogPost.query.get_or_404(post_id)
    if not post.is_published and not has_role(current_user, 'admin'):
        abort(404)
    return post


@public_bp.route('/blogs/<int:post_id>')
def blog_post(post_id):
    post = get_visible_post(post_id)
    related = (BlogPost.query
               .filter(BlogPost.status == 'published',
                       BlogPost.category == post.category,
                       BlogPost.id != post.id)
               .order_by(BlogPost.created_at.desc()).limit(3).all())
    return render_template('public/blog_post.html', post=post, related=related,
                           comments=post.approved_comments,
                           share=share_links(url_for('public.blog_post', post_id=post.id, _external=True),
                                             post.title))


@public_bp.route('/blogs/<int:post_id>/comments', methods=['POST'])
def add_comment(post_id):
    post = get_visible_post(post_id)
    if missing_fields(request.form, 'name', 'content'):
        flash('Name and comment are required.', 'danger')
        return redirect(url_for('public.blog_post', post_id=post.id))

    comment = Comment(post=post,
                      author=request.form['name'].strip(),
                      email=request.form.get('email', '').strip() or None,
                      content=request.form['content'].strip(),
                      status='pending')
    db.session.add(comment)
    db.session.commit()
    logger.info('Comment on post %s awaiting moderation', post.id)
    flash('Thank you! Your comment has been submitted for moderation.', 'success')
    return redirect(url_for('public.blog_post', post_id=post.id))


# --- Events ---

@public_bp.route('/events')
def events():
    event_type = request.args.get('type', 'all')
    query = Event.query.order_by(Event.date)
    if event_type in EVENT_TYPES:
        query = query.filter_by(type=event_type)
    return render_template('public/events.html', events=query.all(),
                           event_types=EVENT_TYPES, selected=event_type)


@public_bp.route('/events/<int:event_id>/rsvp', methods=['POST'])
def rsvp(event_id):
    event = Event.query.get_or_404(event_id)
    if missing_fields(request.form, 'name', 'email', 'phone'):
        flash('Name, email and phone are required.', 'danger')
        return redirect(url_for('public.events'))
    if not valid_email(request.form['email']):
        flash('Please enter a valid email address.', 'danger')
        return redirect(url_for('public.events'))

    # claim a seat only while one is free
    claimed = (Event.query
               .filter(Event.id == event.id, Event.registered < Event.capacity)
               .update({Event.registered: Event.registered + 1}, synchronize_session=False))
    if not claimed:
        db.session.rollback()
        flash(f'Sorry, {event.title} is full.', 'warning')
        return redirect(url_for('public.events'))

    registration = RSVP(event_id=event.id,
                        name=request.form['name'].strip(),
                        email=request.form['email'].strip(),
                        phone=request.form['phone'].strip())
    try:
        db.session.add(registration)
        db.session.commit()
    except Exception as error:
        db.session.rollback()
        logger.error('RSVP for event %s failed: %s', event.id, error, exc_info=True)
        flash('We could not save your registration. Please try again.', 'danger')
        return redirect(url_for('public.events'))

    try:
        send_rsvp_confirmation(registration.name, registration.email, event.title,
                               event.date, event.time, event.location)
        flash(f"You've successfully registered for {event.title}. Check your email for details.",
              'success')
    except EmailDeliveryError as error:
        logger.error('RSVP confirmation to %s failed: %s', registration.email, error, exc_info=True)
        flash(f"You've successfully registered for {event.title}.", 'success')
    return redirect(url_for('public.events'))


# --- Gallery ---

@public_bp.route('/gallery')
def gallery():
    tag = request.args.get('tag', '').strip().lower()
    q = request.args.get('q', '').strip()
    images = GalleryImage.query.order_by(GalleryImage.created_at.desc()).all()
    tags = sorted({img.tag for img in images})
    if tag:
        images = [img for img in images if img.tag == tag]
    if q:
        images = [img for img in images if matches(q, img.tag, img.title)]
    return render_template('public/gallery.html', images=images, tags=tags,
                           selected=tag, q=q)


# --- Testimonies ---

@public_bp.route('/testimony', methods=['GET', 'POST'])
def testimony():
    if request.method == 'POST':
        return submit_testimony()

    cancer_type = request.args.get('cancer_type', '')
    category = request.args.get('category', 'all')
    query = Testimony.query.filter_by(status='approved').order_by(Testimony.created_at.desc())
    if cancer_type and cancer_type != 'All Types':
        query = query.filter_by(cancer_type=cancer_type)
    if category in TESTIMONY_CATEGORIES:
        query = query.filter_by(category=category)
    return render_template('public/testimony.html', testimonies=query.all(),
                           cancer_types=CANCER_TYPES, categories=TESTIMONY_CATEGORIES,
                           selected_type=cancer_type, selected_category=category)


def submit_testimony():
    form = request.form
    if missing_fields(form, 'name', 'story', 'category', 'cancer_type'):
        flash('Please fill in all required fields.', 'danger')
        return redirect(url_for('public.testimony'))
    if form['category'] not in TESTIMONY_CATEGORIES:
        flash('Please choose a valid category.', 'danger')
        return redirect(url_for('public.testimony'))

    entry = Testimony(name=form['name'].strip(), story=form['story'].strip(),
                      category=form['category'], cancer_type=form['cancer_type'].strip(),
                      status='pending')
    try:
        db.session.add(entry)
        db.session.commit()
    except Exception as error:
        db.session.rollback()
        logger.error('Error submitting testimony: %s', error, exc_info=True)
        flash('Failed to submit your story. Please try again.', 'danger')
        return redirect(url_for('public.testimony'))

    logger.info('Testimony %s submitted for review', entry.id)
    flash('Thank you! Your story has been submitted for review.', 'success')
    return redirect(url_for('public.testimony'))


# --- Donations ---

def parse_amount(form):
    raw = form.get('amount') or form.get('custom_amount') or ''
    try:
        amount = float(raw)
    except ValueError:
        return None
    return amount if math.isfinite(amount) and amount > 0 else None


@public_bp.route('/donate', methods=['GET', 'POST'])
def donate():
    if request.method == 'POST':
        amount = parse_amount(request.form)
        if amount is None:
            flash('Please select or enter a valid donation amount.', 'danger')
            return render_template('public/donate.html', tiers=DONATION_TIERS, form=request.form), 400
        donation_type = request.form.get('donation_type', 'one-time')
        if donation_type not in DONATION_TYPES or missing_fields(request.form, 'name', 'email'):
            flash('Please fill in all required fields.', 'danger')
            return render_template('public/donate.html', tiers=DONATION_TIERS, form=request.form), 400

        logger.info('Donation pledge: %s %.2f from %s', donation_type, amount, request.form['email'])
        symbol = current_app.config['CURRENCY_SYMBOL']
        flash(f'Thank you for your {donation_type} donation of {symbol}{amount:,.2f}!', 'success')
        return redirect(url_for('public.donate'))

    return render_template('public/donate.html', tiers=DONATION_TIERS, form={})


# --- Volunteers ---

@public_bp.route('/volunteer', methods=['GET', 'POST'])
def volunteer():
    if request.method == 'POST':
        form = request.form
        roles = [r for r in form.getlist('roles') if r]
        if missing_fields(form, 'first_name', 'last_name', 'email', 'phone', 'availability'):
            flash('Please fill in all required fields.', 'danger')
            return render_template('public/volunteer.html', roles=VOLUNTEER_ROLES, form=form), 400
        if not roles:
            flash('Please select at least one volunteer role.', 'danger')
            return render_template('public/volunteer.html', roles=VOLUNTEER_ROLES, form=form), 400

        application = VolunteerApplication(
            name=f"{form['first_name'].strip()} {form['last_name'].strip()}",
            email=form['email'].strip(),
            phone=form['phone'].strip(),
            availability=form['availability'].strip(),
            interests=', '.join(roles),
            experience=form.get('experience', '').strip() or None,
            status='pending',
        )
        db.session.add(application)
        db.session.commit()
        logger.info('Volunteer application %s received', application.id)
        flash("Application submitted successfully! We'll contact you within 3-5 business days.",
              'success')
        return redirect(url_for('public.volunteer'))

    return render_template('public/volunteer.html', roles=VOLUNTEER_ROLES, form={})
