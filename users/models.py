# users/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models

class User(AbstractUser):
    ROLE_STUDENT = 'student'
    ROLE_ORGANIZER = 'organizer'
    ROLE_ADMIN = 'admin'

    ROLE_CHOICES = (
        (ROLE_STUDENT, 'Student'),
        (ROLE_ORGANIZER, 'Organizer'),
        (ROLE_ADMIN, 'Admin'),
    )

    role = models.CharField(
        max_length=30,
        choices=ROLE_CHOICES,
        default=ROLE_STUDENT
    )

    institution = models.CharField(max_length=255, blank=True, null=True, help_text="University/Organization")

    # Shown to team leaders when picking teammates
    skills = models.JSONField(default=list, blank=True, help_text="List of technical skills")

    def __str__(self):
        return self.username

    @property
    def manages_all_events(self):
        return self.is_superuser or self.role == self.ROLE_ADMIN

    @property
    def can_organize_events(self):
        """Organizers manage their own events' team size limits."""
        return self.manages_all_events or self.role == self.ROLE_ORGANIZER
