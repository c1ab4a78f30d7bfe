from storefront.extensions import db
from ._helpers import utcnow, isoformat

DEFAULT_FEATURED_IMAGE = "/uploads/blog/default-blog-image.jpg"


class BlogPost(db.Model):
    __tablename__ = "blog_posts"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, unique=True)
    content = db.Column(db.Text, nullable=False)
    excerpt = db.Column(db.Text, nullable=False)
    featured_image = db.Column(db.String(500), nullable=False, default=DEFAULT_FEATURED_IMAGE)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    published = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())
    featured = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())
    published_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self, author=None, categories=None):
        """Serialize with the derived author / categories views attached."""
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "content": self.content,
            "excerpt": self.excerpt,
            "featuredImage": self.featured_image,
            "authorId": self.author_id,
            "author": author.to_author_dict() if author is not None else None,
            "categories": [category.to_dict() for category in categories or []],
            "published": bool(self.published),
            "featured": bool(self.featured),
            "publishedAt": isoformat(self.published_at),
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<BlogPost {self.slug}>"


class BlogPostCategory(db.Model):
    """Membership link between a post and a category."""
    __tablename__ = "blog_posts_to_categories"

    blog_post_id = db.Column(db.Integer, db.ForeignKey("blog_posts.id", ondelete="CASCADE"), primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True)
