"""
Transactional email: the RSVP confirmation sent after an event registration.

Delivery is a single hand-off to the configured SMTP relay. There is no retry;
callers decide what to do with a failure.
"""

import logging
import smtplib
from datetime import date, datetime
from email.message import EmailMessage
from email.utils import make_msgid

from flask import Blueprint, current_app, jsonify, render_template, request

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)

REQUIRED_FIELDS = ('name', 'email', 'eventTitle', 'eventDate', 'eventTime', 'eventLocation')


class EmailDeliveryError(Exception):
    pass


def format_event_date(value):
    """'2024-04-15' -> 'Monday, April 15, 2024'."""
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        value = date.fromisoformat(str(value)[:10])
    return f'{value:%A, %B} {value.day}, {value.year}'


def build_rsvp_confirmation(name, email, event_title, event_date, event_time, event_location):
    msg = EmailMessage()
    msg['Subject'] = f'RSVP Confirmed: {event_title}'
    msg['From'] = current_app.config['MAIL_DEFAULT_SENDER']
    msg['To'] = email
    msg['Message-ID'] = make_msgid(domain='hopeconnect')

    context = dict(
        name=name,
        event_title=event_title,
        event_date=format_event_date(event_date),
        event_time=event_time,
        event_location=event_location,
    )
    msg.set_content(render_template('email/rsvp_confirmation.txt', **context))
    msg.add_alternative(render_template('email/rsvp_confirmation.html', **context), subtype='html')
    return msg


def deliver(msg):
    config = current_app.config
    recipients = [msg['To']]
    if config['MAIL_SUPPRESS_SEND']:
        logger.info('Mail suppressed: %r to %s', msg['Subject'], recipients)
        return {'id': msg['Message-ID'], 'to': recipients, 'status': 'suppressed'}

    smtp_class = smtplib.SMTP_SSL if config['MAIL_USE_SSL'] else smtplib.SMTP
    try:
        with smtp_class(config['MAIL_SERVER'], config['MAIL_PORT'], timeout=config['MAIL_TIMEOUT']) as smtp:
            if config['MAIL_PASSWORD']:
                smtp.login(config['MAIL_USERNAME'], config['MAIL_PASSWORD'])
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        raise EmailDeliveryError(str(exc)) from exc

    return {'id': msg['Message-ID'], 'to': recipients, 'status': 'sent'}


def send_rsvp_confirmation(name, email, event_title, event_date, event_time, event_location):
    logger.info('Sending RSVP confirmation to: %s', email)
    try:
        msg = build_rsvp_confirmation(name, email, event_title, event_date, event_time, event_location)
    except ValueError as exc:
        # bad date or a header value the mail library refuses
        raise EmailDeliveryError(str(exc)) from exc
    result = deliver(msg)
    logger.info('Email sent successfully: %s', result)
    return result


# --- JSON endpoint ---

@api_bp.route('/send-rsvp-confirmation', methods=['POST'])
def rsvp_confirmation_endpoint():
    try:
        payload = request.get_json(force=True, silent=True)
        if not isinstance(payload, dict):
            raise ValueError('Request body must be a JSON object')
        missing = [f for f in REQUIRED_FIELDS if not payload.get(f)]
        if missing:
            raise ValueError(f"Missing fields: {', '.join(missing)}")

        result = send_rsvp_confirmation(
            payload['name'], payload['email'], payload['eventTitle'],
            payload['eventDate'], payload['eventTime'], payload['eventLocation'],
        )
    except (ValueError, EmailDeliveryError) as error:
        logger.error('Error in send-rsvp-confirmation: %s', error, exc_info=True)
        return jsonify({'error': str(error)}), 500

    return jsonify(result), 200
