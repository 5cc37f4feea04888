from django.db import models
from django.contrib.auth.models import User


class UserProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='profile')
    whatsapp_number = models.CharField(max_length=255, blank=True, default='')
    profile_picture = models.ImageField(upload_to='profile_pics/', null=True, blank=True)
    google_id = models.CharField(max_length=555, blank=True, null=True)

    def __str__(self):
        return self.user.username
