from django.apps import AppConfig


class ContactConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'contact'
    verbose_name = 'Contact Form'

    def ready(self):
        """Build the submission guard once; it owns the rate limit store."""
        from .guard import build_submission_guard

        self.guard = build_submission_guard()
