from django.contrib.auth.models import User
from django.contrib.auth.tokens import default_token_generator
from django.contrib.auth.password_validation import validate_password
from django.db import transaction
from django.utils.encoding import force_str
from django.utils.http import urlsafe_base64_decode
from rest_framework import serializers

from user.models import UserProfile


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField()


class ProfileSerializer(serializers.ModelSerializer):
    profile_picture = serializers.SerializerMethodField()

    class Meta:
        model = UserProfile
        fields = ('whatsapp_number', 'profile_picture')

    def get_profile_picture(self, obj):
        if obj.profile_picture:
            request = self.context.get('request')
            if request is not None:
                return request.build_absolute_uri(obj.profile_picture.url)
            return obj.profile_picture.url
        return None


class UserSerializer(serializers.ModelSerializer):
    name = serializers.SerializerMethodField()
    is_admin = serializers.BooleanField(source='is_staff', read_only=True)
    disabled = serializers.SerializerMethodField()
    profile = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ('id', 'username', 'email', 'first_name', 'last_name', 'name', 'is_admin', 'disabled', 'profile')

    def get_name(self, obj):
        return obj.get_full_name() or obj.username

    def get_disabled(self, obj):
        return not obj.is_active

    def get_profile(self, obj):
        if hasattr(obj, 'profile') and obj.profile:
            return ProfileSerializer(obj.profile, context=self.context).data
        return None


class RegisterSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    whatsapp_number = serializers.CharField(max_length=255)
    password = serializers.CharField(write_only=True)

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError('Name is required')
        return value.strip()

    def validate_password(self, value):
        validate_password(value)
        return value

    @transaction.atomic
    def create(self, validated_data):
        first_name, _, last_name = validated_data['name'].partition(' ')
        user = User.objects.create_user(
            username=validated_data['email'],
            email=validated_data['email'],
            password=validated_data['password'],
            first_name=first_name,
            last_name=last_name,
        )
        UserProfile.objects.create(user=user, whatsapp_number=validated_data['whatsapp_number'])
        return user


class UserWriteSerializer(serializers.ModelSerializer):
    """Admin-side create/update. ``is_admin``/``disabled`` map onto is_staff/is_active."""
    is_admin = serializers.BooleanField(source='is_staff', required=False)
    disabled = serializers.BooleanField(required=False, write_only=True)
    whatsapp_number = serializers.CharField(max_length=255, required=False, write_only=True)
    password = serializers.CharField(write_only=True, required=False)

    class Meta:
        model = User
        fields = ('email', 'first_name', 'last_name', 'is_admin', 'disabled', 'whatsapp_number', 'password')

    def validate_email(self, value):
        qs = User.objects.filter(email__iexact=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError('User already exists')
        return value

    def _apply(self, user, validated_data):
        disabled = validated_data.pop('disabled', None)
        whatsapp_number = validated_data.pop('whatsapp_number', None)
        password = validated_data.pop('password', None)

        for field, value in validated_data.items():
            setattr(user, field, value)
        if disabled is not None:
            user.is_active = not disabled
        if password:
            user.set_password(password)
        elif user.pk is None:
            user.set_unusable_password()
        user.save()

        profile, _ = UserProfile.objects.get_or_create(user=user)
        if whatsapp_number is not None:
            profile.whatsapp_number = whatsapp_number
            profile.save(update_fields=['whatsapp_number'])
        return user

    @transaction.atomic
    def create(self, validated_data):
        user = User(username=validated_data['email'])
        return self._apply(user, validated_data)

    @transaction.atomic
    def update(self, instance, validated_data):
        return self._apply(instance, validated_data)


class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()


class ResetPasswordSerializer(serializers.Serializer):
    uid = serializers.CharField()
    token = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        try:
            user_id = force_str(urlsafe_base64_decode(attrs['uid']))
            user = User.objects.get(pk=user_id, is_active=True)
        except (TypeError, ValueError, OverflowError, User.DoesNotExist):
            user = None

        if user is None or not default_token_generator.check_token(user, attrs['token']):
            raise serializers.ValidationError({'token': 'Invalid or expired reset token'})

        validate_password(attrs['password'], user)
        attrs['user'] = user
        return attrs


class ChangePasswordSerializer(serializers.Serializer):
    old_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)

    def validate_old_password(self, value):
        if not self.context['request'].user.check_password(value):
            raise serializers.ValidationError('Current password is incorrect')
        return value

    def validate_new_password(self, value):
        validate_password(value, self.context['request'].user)
        return value
