import logging
from datetime import datetime

from flask import Blueprint, flash, redirect, render_template, request, url_for
from flask_login import current_user
from sqlalchemy import and_, func

from hopeconnect.auth import admin_required
from hopeconnect.database import db
from hopeconnect.models import (
    AwarenessResource, BlogPost, Comment, Event, EVENT_TYPES, GalleryImage,
    POST_CATEGORIES, POST_STATUSES, Project, PROJECT_CATEGORIES, PROJECT_STATUSES,
    RESOURCE_CATEGORIES, REVIEW_STATUSES, ROLES, RSVP, TeamMember, Testimony,
    TESTIMONY_CATEGORIES, User, UserRole, VolunteerApplication,
)
from hopeconnect.storage import (
    UploadError, discard_uploads, has_file, save_document, save_image, save_images,
)

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)


@admin_bp.before_request
@admin_required
def require_admin():
    """Every admin view is gated on the admin role."""


def read_form(required, optional=()):
    values = {name: request.form.get(name, '').strip() for name in tuple(required) + tuple(optional)}
    missing = [name for name in required if not values[name]]
    return values, missing


def resolve_image(folder, current=None):
    """An uploaded ``image_file`` wins over a pasted ``image`` URL."""
    upload = request.files.get('image_file')
    if has_file(upload):
        return save_image(upload, folder)
    return request.form.get('image', '').strip() or current


def commit(message, action):
    try:
        db.session.commit()
    except Exception as error:
        db.session.rollback()
        discard_uploads()
        logger.error('Admin %s failed: %s', action, error, exc_info=True)
        flash(f'Error: {error}', 'danger')
        return False
    logger.info('Admin %s by %s', action, current_user.email)
    flash(message, 'success')
    return True


def status_counts(model):
    rows = db.session.query(model.status, func.count(model.id)).group_by(model.status).all()
    counts = {status: 0 for status in REVIEW_STATUSES}
    counts.update({status: count for status, count in rows if status})
    return counts


# --- Dashboard ---

@admin_bp.route('/')
def dashboard():
    totals = {
        'Blog posts': BlogPost.query.count(),
        'Comments': Comment.query.count(),
        'Events': Event.query.count(),
        'RSVPs': RSVP.query.count(),
        'Testimonies': Testimony.query.count(),
        'Team members': TeamMember.query.count(),
        'Projects': Project.query.count(),
        'Gallery images': GalleryImage.query.count(),
        'Resources': AwarenessResource.query.count(),
        'Volunteer applications': VolunteerApplication.query.count(),
    }
    pending = {
        'comments': Comment.query.filter_by(status='pending').count(),
        'testimonies': Testimony.query.filter_by(status='pending').count(),
        'volunteers': VolunteerApplication.query.filter_by(status='pending').count(),
    }
    comment_count = func.count(Comment.id)
    top_posts = (db.session.query(BlogPost, comment_count)
                 .outerjoin(Comment, and_(Comment.blog_post_id == BlogPost.id,
                                          Comment.status == 'approved'))
                 .filter(BlogPost.status == 'published')
                 .group_by(BlogPost.id)
                 .order_by(comment_count.desc(), BlogPost.created_at.desc())
                 .limit(5).all())
    return render_template('admin/dashboard.html', totals=totals, pending=pending,
                           top_posts=top_posts)


# --- Blog posts ---

POST_REQUIRED = ('title', 'excerpt', 'content', 'category', 'author', 'status')


def apply_post(post):
    values, missing = read_form(POST_REQUIRED, ('linked_event_id',))
    if missing:
        return 'Please fill in all required fields.'
    if values['status'] not in POST_STATUSES or values['category'] not in POST_CATEGORIES:
        return 'Invalid category or status.'
    linked = values.pop('linked_event_id')
    if linked:
        if not linked.isdigit() or Event.query.get(int(linked)) is None:
            return 'Linked event does not exist.'
        post.linked_event_id = int(linked)
    else:
        post.linked_event_id = None
    for name, value in values.items():
        setattr(post, name, value)
    post.image = resolve_image('blog', post.image)
    return None


def render_post_form(post):
    events = Event.query.order_by(Event.date.desc()).all()
    return render_template('admin/post_form.html', post=post, events=events,
                           categories=POST_CATEGORIES, statuses=POST_STATUSES)


@admin_bp.route('/posts')
def posts():
    items = BlogPost.query.order_by(BlogPost.created_at.desc()).all()
    return render_template('admin/posts.html', posts=items)


@admin_bp.route('/posts/new', methods=['GET', 'POST'])
def create_post():
    post = BlogPost(status='draft', category=POST_CATEGORIES[0])
    if request.method == 'POST':
        try:
            error = apply_post(post)
        except UploadError as upload_error:
            error = str(upload_error)
        if error:
            flash(error, 'danger')
            return render_post_form(post), 400
        db.session.add(post)
        if commit('Post created successfully', 'create post'):
            return redirect(url_for('admin.posts'))
    return render_post_form(post)


@admin_bp.route('/posts/<int:post_id>/edit', methods=['GET', 'POST'])
def edit_post(post_id):
    post = BlogPost.query.get_or_404(post_id)
    if request.method == 'POST':
        try:
            error = apply_post(post)
        except UploadError as upload_error:
            error = str(upload_error)
        if error:
            db.session.rollback()
            discard_uploads()
            flash(error, 'danger')
            return render_post_form(post), 400
        if commit('Post updated successfully', f'update post {post.id}'):
            return redirect(url_for('admin.posts'))
    return render_post_form(post)


@admin_bp.route('/posts/<int:post_id>/delete', methods=['POST'])
def delete_post(post_id):
    post = BlogPost.query.get_or_404(post_id)
    db.session.delete(post)
    commit('Post deleted successfully', f'delete post {post_id}')
    return redirect(url_for('admin.posts'))


# --- Comment moderation ---

@admin_bp.route('/comments')
def comments():
    status = request.args.get('status', 'all')
    query = Comment.query.order_by(Comment.created_at.desc())
    if status in REVIEW_STATUSES:
        query = query.filter_by(status=status)
    return render_template('admin/comments.html', comments=query.all(), selected=status,
                           counts=status_counts(Comment))


@admin_bp.route('/comments/<int:comment_id>/status', methods=['POST'])
def set_comment_status(comment_id):
    comment = Comment.query.get_or_404(comment_id)
    status = request.form.get('status')
    if status not in REVIEW_STATUSES:
        flash('Invalid status.', 'danger')
        return redirect(url_for('admin.comments'))
    comment.status = status
    commit(f'Comment {status}', f'set comment {comment_id} {status}')
    return redirect(url_for('admin.comments'))


# --- Events ---

EVENT_REQUIRED = ('title', 'description', 'date', 'time', 'location', 'type', 'capacity')


def apply_event(event):
    values, missing = read_form(EVENT_REQUIRED)
    if missing:
        return 'Please fill in all required fields.'
    if values['type'] not in EVENT_TYPES:
        return 'Invalid event type.'
    try:
        event_date = datetime.strptime(values.pop('date'), '%Y-%m-%d').date()
    except ValueError:
        return 'Invalid date'
    try:
        capacity = int(values.pop('capacity'))
    except ValueError:
        return 'Capacity must be a whole number.'
    if capacity < 0:
        return 'Capacity must be a whole number.'
    for name, value in values.items():
        setattr(event, name, value)
    event.date = event_date
    event.capacity = capacity
    event.image = resolve_image('events', event.image)
    return None


@admin_bp.route('/events')
def events():
    items = Event.query.order_by(Event.date.desc()).all()
    return render_template('admin/events.html', events=items)


@admin_bp.route('/events/new', methods=['GET', 'POST'])
def create_event():
    event = Event(type='awareness', registered=0)
    if request.method == 'POST':
        try:
            error = apply_event(event)
        except UploadError as upload_error:
            error = str(upload_error)
        if error:
            flash(error, 'danger')
            return render_template('admin/event_form.html', event=event, event_types=EVENT_TYPES), 400
        db.session.add(event)
        if commit('Event created', 'create event'):
            return redirect(url_for('admin.events'))
    return render_template('admin/event_form.html', event=event, event_types=EVENT_TYPES)


@admin_bp.route('/events/<int:event_id>/edit', methods=['GET', 'POST'])
def edit_event(event_id):
    event = Event.query.get_or_404(event_id)
    if request.method == 'POST':
        try:
            error = apply_event(event)
        except UploadError as upload_error:
            error = str(upload_error)
        if error:
            db.session.rollback()
            discard_uploads()
            flash(error, 'danger')
            return render_template('admin/event_form.html', event=event, event_types=EVENT_TYPES), 400
        if commit('Event updated successfully', f'update event {event.id}'):
            return redirect(url_for('admin.events'))
    return render_template('admin/event_form.html', event=event, event_types=EVENT_TYPES)


@admin_bp.route('/events/<int:event_id>/delete', methods=['POST'])
def delete_event(event_id):
    event = Event.query.get_or_404(event_id)
    # recap posts keep existing without the link
    BlogPost.query.filter_by(linked_event_id=event.id).update({BlogPost.linked_event_id: None})
    db.session.delete(event)
    commit('Event deleted successfully.', f'delete event {event_id}')
    return redirect(url_for('admin.events'))


@admin_bp.route('/events/<int:event_id>/rsvps')
def event_rsvps(event_id):
    event = Event.query.get_or_404(event_id)
    items = RSVP.query.filter_by(event_id=event.id).order_by(RSVP.created_at).all()
    return render_template('admin/rsvps.html', event=event, rsvps=items)


# --- Testimonies ---

TESTIMONY_REQUIRED = ('name', 'story', 'category', 'cancer_type')


def apply_testimony(entry):
    values, missing = read_form(TESTIMONY_REQUIRED, ('status',))
    if missing:
        return 'Please fill in all required fields.'
    if values['category'] not in TESTIMONY_CATEGORIES:
        return 'Invalid category.'
    status = values.pop('status') or entry.status or 'pending'
    if status not in REVIEW_STATUSES:
        return 'Invalid status.'
    for name, value in values.items():
        setattr(entry, name, value)
    entry.status = status
    entry.image = resolve_image('testimonies', entry.image)
    return None


def render_testimony_form(entry):
    return render_template('admin/testimony_form.html', testimony=entry,
                           categories=TESTIMONY_CATEGORIES, statuses=REVIEW_STATUSES)


@admin_bp.route('/testimonies')
def testimonies():
    status = request.args.get('status', 'pending')
    if status not in REVIEW_STATUSES:
        status = 'pending'
    items = (Testimony.query.filter_by(status=status)
             .order_by(Testimony.created_at.desc()).all())
    return render_template('admin/testimonies.html', testimonies=items, selected=status,
                           counts=status_counts(Testimony))


@admin_bp.route('/testimonies/new', methods=['GET', 'POST'])
def create_testimony():
    entry = Testimony(status='approved', category='survivor')
    if request.method == 'POST':
        try:
            error = apply_testimony(entry)
        except UploadError as upload_error:
            error = str(upload_error)
        if error:
            flash(error, 'danger')
            return render_testimony_form(entry), 400
        db.session.add(entry)
        if commit('Testimony created', 'create testimony'):
            return redirect(url_for('admin.testimonies', status=entry.status))
    return render_testimony_form(entry)


@admin_bp.route('/testimonies/<int:testimony_id>/edit', methods=['GET', 'POST'])
def edit_testimony(testimony_id):
    entry = Testimony.query.get_or_404(testimony_id)
    if request.method == 'POST':
        try:
            error = apply_testimony(entry)
        except UploadError as upload_error:
            error = str(upload_error)
        if error:
            db.session.rollback()
            discard_uploads()
            flash(error, 'danger')
            return render_testimony_form(entry), 400
        if commit('Testimony updated', f'update testimony {entry.id}'):
            return redirect(url_for('admin.testimonies', status=entry.status))
    return render_testimony_form(entry)


@admin_bp.route('/testimonies/<int:testimony_id>/status', methods=['POST'])
def set_testimony_status(testimony_id):
    entry = Testimony.query.get_or_404(testimony_id)
    status = request.form.get('status')
    if status not in REVIEW_STATUSES:
        flash('Invalid status.', 'danger')
        return redirect(url_for('admin.testimonies'))
    entry.status = status
    commit(f'Testimony {status}', f'set testimony {testimony_id} {status}')
    return redirect(url_for('admin.testimonies'))


@admin_bp.route('/testimonies/<int:testimony_id>/delete', methods=['POST'])
def delete_testimony(testimony_id):
    entry = Testimony.query.get_or_404(testimony_id)
    status = entry.status
    db.session.delete(entry)
    commit('Testimony deleted', f'delete testimony {testimony_id}')
    return redirect(url_for('admin.testimonies', status=status))


# --- Team ---

def apply_member(member):
    values, missing = read_form(('name', 'role', 'bio'), ('order_index',))
    if missing:
        return 'Please fill in all required fields.'
    order_index = values.pop('order_index') or '0'
    try:
        member.order_index = int(order_index)
    except ValueError:
        return 'Display order must be a whole number.'
    for name, value in values.items():
        setattr(member, name, value)
    member.image = resolve_image('team', member.image)
    return None


@admin_bp.route('/team')
def team():
    members = TeamMember.query.order_by(TeamMember.order_index, TeamMember.id).all()
    return render_template('admin/team.html', members=members)


@admin_bp.route('/team/new', methods=['GET', 'POST'])
def create_member():
    member = TeamMember(order_index=TeamMember.query.count())
    if request.method == 'POST':
        try:
            error = apply_member(member)
        except UploadError as upload_error:
            error = str(upload_error)
        if error:
            flash(error, 'danger')
            return render_template('admin/member_form.html', member=member), 400
        db.session.add(member)
        if commit('Team member added', 'create team member'):
            return redirect(url_for('admin.team'))
    return render_template('admin/member_form.html', member=member)


@admin_bp.route('/team/<int:member_id>/edit', methods=['GET', 'POST'])
def edit_member(member_id):
    member = TeamMember.query.get_or_404(member_id)
    if request.method == 'POST':
        try:
            error = apply_member(member)
        except UploadError as upload_error:
            error = str(upload_error)
        if error:
            db.session.rollback()
            discard_uploads()
            flash(error, 'danger')
            return render_template('admin/member_form.html', member=member), 400
        if commit('Team member updated', f'update team member {member.id}'):
            return redirect(url_for('admin.team'))
    return render_template('admin/member_form.html', member=member)


@admin_bp.route('/team/<int:member_id>/delete', methods=['POST'])
def delete_member(member_id):
    member = TeamMember.query.get_or_404(member_id)
    db.session.delete(member)
    commit('Team member deleted', f'delete team member {member_id}')
    return redirect(url_for('admin.team'))


# --- Projects ---

def apply_project(project):
    values, missing = read_form(('title', 'description', 'category', 'status'))
    if missing:
        return 'Please fill in all required fields.'
    if values['category'] not in PROJECT_CATEGORIES or values['status'] not in PROJECT_STATUSES:
        return 'Invalid category or status.'
    for name, value in values.items():
        setattr(project, name, value)
    project.image = resolve_image('projects', project.image)
    return None


def render_project_form(project):
    return render_template('admin/project_form.html', project=project,
                           categories=PROJECT_CATEGORIES, statuses=PROJECT_STATUSES)


@admin_bp.route('/projects')
def projects():
    items = Project.query.order_by(Project.created_at.desc()).all()
    return render_template('admin/projects.html', projects=items)


@admin_bp.route('/projects/new', methods=['GET', 'POST'])
def create_project():
    project = Project(status='active', category=PROJECT_CATEGORIES[0])
    if request.method == 'POST':
        try:
            error = apply_project(project)
        except UploadError as upload_error:
            error = str(upload_error)
        if error:
            flash(error, 'danger')
            return render_project_form(project), 400
        db.session.add(project)
        if commit('Project created', 'create project'):
            return redirect(url_for('admin.projects'))
    return render_project_form(project)


@admin_bp.route('/projects/<int:project_id>/edit', methods=['GET', 'POST'])
def edit_project(project_id):
    project = Project.query.get_or_404(project_id)
    if request.method == 'POST':
        try:
            error = apply_project(project)
        except UploadError as upload_error:
            error = str(upload_error)
        if error:
            db.session.rollback()
            discard_uploads()
            flash(error, 'danger')
            return render_project_form(project), 400
        if commit('Project updated', f'update project {project.id}'):
            return redirect(url_for('admin.projects'))
    return render_project_form(project)


@admin_bp.route('/projects/<int:project_id>/delete', methods=['POST'])
def delete_project(project_id):
    project = Project.query.get_or_404(project_id)
    db.session.delete(project)
    commit('Project deleted', f'delete project {project_id}')
    return redirect(url_for('admin.projects'))


# --- Gallery ---

def gallery_tags():
    return [tag for (tag,) in db.session.query(GalleryImage.tag).distinct().order_by(GalleryImage.tag)]


@admin_bp.route('/gallery')
def gallery():
    tag = request.args.get('tag', 'all')
    query = GalleryImage.query.order_by(GalleryImage.created_at.desc())
    if tag != 'all':
        query = query.filter_by(tag=tag)
    return render_template('admin/gallery.html', images=query.all(), tags=gallery_tags(),
                           selected=tag)


@admin_bp.route('/gallery/new', methods=['POST'])
def add_gallery_images():
    tag = (request.form.get('new_tag') or request.form.get('tag') or '').lower().strip()
    title = request.form.get('title', '').strip() or None
    try:
        urls = save_images(request.files.getlist('image_files'), 'gallery')
    except UploadError as error:
        discard_uploads()
        flash(str(error), 'danger')
        return redirect(url_for('admin.gallery'))
    pasted = request.form.get('image_url', '').strip()
    if pasted:
        urls.append(pasted)

    if not urls or not tag:
        discard_uploads()
        flash('Please upload an image and select/enter a tag', 'danger')
        return redirect(url_for('admin.gallery'))

    db.session.add_all([GalleryImage(image_url=url, tag=tag, title=title) for url in urls])
    commit(f'{len(urls)} image(s) added to gallery', 'add gallery images')
    return redirect(url_for('admin.gallery'))


@admin_bp.route('/gallery/<int:image_id>/delete', methods=['POST'])
def delete_gallery_image(image_id):
    image = GalleryImage.query.get_or_404(image_id)
    db.session.delete(image)
    commit('Image deleted', f'delete gallery image {image_id}')
    return redirect(url_for('admin.gallery'))


# --- Awareness resources ---

@admin_bp.route('/resources')
def resources():
    items = AwarenessResource.query.order_by(AwarenessResource.created_at.desc()).all()
    return render_template('admin/resources.html', resources=items, categories=RESOURCE_CATEGORIES)


@admin_bp.route('/resources/new', methods=['POST'])
def create_resource():
    values, missing = read_form(('title', 'category'), ('description',))
    if missing or values['category'] not in RESOURCE_CATEGORIES:
        flash('Please fill in all required fields.', 'danger')
        return redirect(url_for('admin.resources'))
    try:
        file_url, file_type = save_document(request.files.get('file'), 'resources')
    except UploadError as error:
        flash(str(error), 'danger')
        return redirect(url_for('admin.resources'))

    db.session.add(AwarenessResource(title=values['title'],
                                     description=values['description'] or None,
                                     category=values['category'],
                                     file_url=file_url, file_type=file_type))
    commit('Resource added successfully', 'add resource')
    return redirect(url_for('admin.resources'))


@admin_bp.route('/resources/<int:resource_id>/delete', methods=['POST'])
def delete_resource(resource_id):
    resource = AwarenessResource.query.get_or_404(resource_id)
    db.session.delete(resource)
    commit('Resource deleted', f'delete resource {resource_id}')
    return redirect(url_for('admin.resources'))


# --- Volunteer applications ---

@admin_bp.route('/volunteers')
def volunteers():
    status = request.args.get('status', 'all')
    query = VolunteerApplication.query.order_by(VolunteerApplication.created_at.desc())
    if status in REVIEW_STATUSES:
        query = query.filter_by(status=status)
    return render_template('admin/volunteers.html', applications=query.all(), selected=status,
                           counts=status_counts(VolunteerApplication))


@admin_bp.route('/volunteers/<int:application_id>/status', methods=['POST'])
def set_volunteer_status(application_id):
    application = VolunteerApplication.query.get_or_404(application_id)
    status = request.form.get('status')
    if status not in REVIEW_STATUSES:
        flash('Invalid status.', 'danger')
        return redirect(url_for('admin.volunteers'))
    application.status = status
    commit('Application status updated', f'set volunteer application {application_id} {status}')
    return redirect(url_for('admin.volunteers'))


# --- Users ---

@admin_bp.route('/users')
def users():
    items = User.query.order_by(User.email).all()
    return render_template('admin/users.html', users=items)


@admin_bp.route('/users/<int:user_id>/role', methods=['POST'])
def set_user_role(user_id):
    target = User.query.get_or_404(user_id)
    new_role = request.form.get('role', 'user')
    if new_role not in ROLES:
        flash('Invalid role.', 'danger')
        return redirect(url_for('admin.users'))

    if new_role == 'admin':
        if not target.has_role('admin'):
            target.roles.append(UserRole(role='admin'))
    else:
        # Prevent removing the last admin
        if target.has_role('admin') and UserRole.query.filter_by(role='admin').count() <= 1:
            flash('Cannot remove the last remaining admin.', 'warning')
            return redirect(url_for('admin.users'))
        for role in [r for r in target.roles if r.role == 'admin']:
            target.roles.remove(role)
        if not target.has_role('user'):
            target.roles.append(UserRole(role='user'))

    commit(f'Updated role for {target.email} to {new_role}.', f'set role {new_role} for user {user_id}')
    return redirect(url_for('admin.users'))
