from newsletter_service.newsletters.domain.issue import NewsletterIssue, PublishNewsletterCommand

__all__ = ["NewsletterIssue", "PublishNewsletterCommand"]
