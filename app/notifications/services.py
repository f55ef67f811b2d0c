# notifications/services.py
from django.db import transaction
import logging

from .tasks import send_notification_email_task, alert_operators_task

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Queues e-mails once the surrounding transaction commits.
    Nothing here ever raises into the booking flow.
    """

    @staticmethod
    def _enqueue(task, *args):
        def send():
            try:
                task.delay(*args)
            except Exception as e:
                logger.error(f"Could not queue {task.name}: {str(e)}")
        transaction.on_commit(send)

    @staticmethod
    def _when(appointment):
        tz = appointment.psychologist.tzinfo
        return appointment.start_time.astimezone(tz).strftime('%Y-%m-%d %H:%M %Z')

    @staticmethod
    def notify_booking_created(appointment):
        when = NotificationService._when(appointment)
        NotificationService._enqueue(
            send_notification_email_task,
            appointment.client.user.email,
            "Your session is booked",
            f"Your session with {appointment.psychologist.display_name} on {when} has been booked.",
        )
        NotificationService._enqueue(
            send_notification_email_task,
            appointment.psychologist.user.email,
            "New session booked",
            f"{appointment.client.display_name} booked a session on {when}.",
        )

    @staticmethod
    def notify_booking_cancelled(appointment, credit=None):
        when = NotificationService._when(appointment)
        message = f"The session on {when} with {appointment.psychologist.display_name} was cancelled."
        if credit is not None:
            message += f" A credit of {credit.amount} has been added to your account."
        NotificationService._enqueue(
            send_notification_email_task,
            appointment.client.user.email,
            "Session cancelled",
            message,
        )
        NotificationService._enqueue(
            send_notification_email_task,
            appointment.psychologist.user.email,
            "Session cancelled",
            f"The session on {when} with {appointment.client.display_name} was cancelled.",
        )

    @staticmethod
    def notify_booking_completed(appointment):
        NotificationService._enqueue(
            send_notification_email_task,
            appointment.client.user.email,
            "Thanks for your session",
            f"Your session with {appointment.psychologist.display_name} is complete.",
        )

    @staticmethod
    def notify_payment_failed(payment):
        NotificationService._enqueue(
            send_notification_email_task,
            payment.client.user.email,
            "Payment failed",
            f"We could not process your payment of {payment.amount} {payment.currency}.",
        )

    @staticmethod
    def alert_operators(subject: str, message: str):
        logger.critical(f"{subject}: {message}")
        NotificationService._enqueue(alert_operators_task, subject, message)
