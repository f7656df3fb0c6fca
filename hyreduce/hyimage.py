"""
Store multi-band raster image data.
"""

from hyreduce.hydata import HyData

class HyImage( HyData ):
    """
    A class for multi-band image data, stored such that data[x][y][band] gives each pixel value.
    """

    def __init__(self, data, **kwds):
        """
        Args:
            data (ndarray): a numpy array such that data[x][y][band] gives each pixel value.
            **kwds: header = associated metadata (HyHeader or dict). Default is None.
                    nodata = missing value sentinel. Default is None (nans only).
        """

        #call constructor for HyData
        super().__init__(data, **kwds)

        # special case - if dataset only has one band, slice it so it still has
        # the format data[x,y,b].
        if self.data is not None:
            if len(self.data.shape) == 1:
                self.data = self.data[None, None, :] # single pixel image
            if len(self.data.shape) == 2:
                self.data = self.data[:, :, None] # single band image

    def xdim(self):
        """
        Return number of pixels in x (first dimension of data array)
        """
        return self.data.shape[0]

    def ydim(self):
        """
        Return number of pixels in y (second dimension of data array)
        """
        return self.data.shape[1]
