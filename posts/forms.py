from django import forms
from django.utils.translation import gettext_lazy as _

from formatting.pipeline import SourceFormat

from .models import Post


class PostForm(forms.ModelForm):
    """Form for publishing a post."""

    class Meta:
        model = Post
        fields = ['source', 'content_type', 'safe_mention']
        widgets = {
            'source': forms.Textarea(attrs={
                'class': 'form-control',
                'rows': 4,
                'placeholder': _('What is happening?'),
            }),
            'content_type': forms.Select(attrs={
                'class': 'form-select',
            }),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['content_type'].required = False

    def clean_content_type(self):
        return self.cleaned_data.get('content_type') or SourceFormat.PLAIN

    def clean_source(self):
        source = self.cleaned_data.get('source', '')
        if not source.strip():
            raise forms.ValidationError(_('A post cannot be empty.'))
        return source
